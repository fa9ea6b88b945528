"""
Training data container.

A Dataset is an ordered list of samples, each an input vector and an output
vector with values in [0, 1]. Raw domain values (e.g. pixel bytes) are mapped
into that range with encode() and back with decode().

Build datasets through the from_* factories; they validate what they build.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
import numpy as np

from ..core.numbers import encode, decode
from ..exceptions import InvalidDatasetError


@dataclass
class Sample:
    """One training pair plus free-form metadata (e.g. image shape)."""
    input: np.ndarray
    output: np.ndarray
    info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'input': self.input.tolist(),
            'output': self.output.tolist(),
            'info': dict(self.info),
        }


@dataclass
class Dataset:
    """
    Ordered training samples with explicit metadata.

    Attributes:
        samples: Training pairs
        location: Where the data came from, if anywhere
        kind: Task type label
        min_value / max_value: Range of the raw values before encoding
    """
    samples: List[Sample]
    location: Optional[str] = None
    kind: str = 'classification'
    min_value: float = 0.0
    max_value: float = 1.0

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples)

    def __getitem__(self, index: int) -> Sample:
        return self.samples[index]

    @property
    def input_size(self) -> int:
        return int(self.samples[0].input.size)

    @property
    def output_size(self) -> int:
        return int(self.samples[0].output.size)

    def inputs(self) -> np.ndarray:
        return np.vstack([s.input for s in self.samples])

    def targets(self) -> np.ndarray:
        return np.vstack([s.output for s in self.samples])

    def validate(self) -> 'Dataset':
        """
        Check that the data can be trained on.

        Raises:
            InvalidDatasetError: empty data, size mismatch between samples,
                non-finite values or values outside [0, 1]
        """
        if not self.samples:
            raise InvalidDatasetError("Dataset is empty")

        input_size, output_size = self.input_size, self.output_size
        if input_size == 0 or output_size == 0:
            raise InvalidDatasetError("Samples must have non-empty input and output")

        for i, sample in enumerate(self.samples):
            if sample.input.size != input_size or sample.output.size != output_size:
                raise InvalidDatasetError(
                    f"Sample {i} has sizes ({sample.input.size}, {sample.output.size}), "
                    f"expected ({input_size}, {output_size})",
                    context={'index': i},
                )
            for name, values in (('input', sample.input), ('output', sample.output)):
                if not np.all(np.isfinite(values)):
                    raise InvalidDatasetError(f"Sample {i} {name} contains non-finite values")
                if np.any(values < 0) or np.any(values > 1):
                    raise InvalidDatasetError(
                        f"Sample {i} {name} has values outside [0, 1]; encode the data first"
                    )
        return self

    def to_pairs(self) -> List[Dict[str, List[float]]]:
        return [{'input': s.input.tolist(), 'output': s.output.tolist()} for s in self.samples]

    def decode_outputs(self) -> List[np.ndarray]:
        """Raw-range values of every sample's output."""
        return [decode(s.output, min=self.min_value, max=self.max_value) for s in self.samples]

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Dict[str, Sequence[float]]],
        location: Optional[str] = None,
    ) -> 'Dataset':
        """Build from [{'input': [...], 'output': [...]}, ...]."""
        samples = []
        for i, pair in enumerate(pairs):
            try:
                samples.append(Sample(
                    input=np.asarray(pair['input'], dtype=float).ravel(),
                    output=np.asarray(pair['output'], dtype=float).ravel(),
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidDatasetError(f"Malformed sample {i}: {e}", context={'index': i}) from e
        return cls(samples=samples, location=location).validate()

    @classmethod
    def from_arrays(cls, X: np.ndarray, Y: np.ndarray) -> 'Dataset':
        """Build from an input matrix and a target matrix with matching rows."""
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if Y.ndim == 1:
            Y = Y.reshape(-1, 1)
        if X.shape[0] != Y.shape[0]:
            raise InvalidDatasetError(
                f"X has {X.shape[0]} rows but Y has {Y.shape[0]}"
            )
        samples = [Sample(input=x.copy(), output=y.copy()) for x, y in zip(X, Y)]
        return cls(samples=samples).validate()

    @classmethod
    def from_outputs(
        cls,
        outputs: Sequence[np.ndarray],
        min_value: float = 0.0,
        max_value: float = 255.0,
        location: Optional[str] = None,
    ) -> 'Dataset':
        """
        Build an index-to-image dataset.

        Sample i gets the single input encode(i, max=len(outputs) - 1) and the
        flattened output encoded from [min_value, max_value]. The original
        shape of each output is kept in sample.info['shape'].
        """
        outputs = list(outputs)
        if not outputs:
            raise InvalidDatasetError("No outputs given")
        last_index = max(len(outputs) - 1, 1)

        samples = []
        for i, raw in enumerate(outputs):
            raw = np.asarray(raw, dtype=float)
            samples.append(Sample(
                input=np.array([encode(i, max=last_index)]),
                output=encode(raw.ravel(), min=min_value, max=max_value),
                info={'shape': raw.shape, 'index': i},
            ))
        return cls(
            samples=samples,
            location=location,
            min_value=min_value,
            max_value=max_value,
        ).validate()


DataLike = Union[Dataset, Sequence[Dict[str, Sequence[float]]], Tuple[np.ndarray, np.ndarray]]


def as_dataset(data: DataLike) -> Dataset:
    """Coerce a Dataset, a list of pairs or an (X, Y) tuple to a validated Dataset."""
    if isinstance(data, Dataset):
        return data.validate()
    if isinstance(data, tuple) and len(data) == 2 and isinstance(data[0], np.ndarray):
        return Dataset.from_arrays(*data)
    if data is None:
        raise InvalidDatasetError("No data given")
    return Dataset.from_pairs(data)


def to_arrays(data: DataLike) -> Tuple[np.ndarray, np.ndarray]:
    """Inputs and targets as 2-D float arrays."""
    if isinstance(data, tuple) and len(data) == 2 and isinstance(data[0], np.ndarray):
        X, Y = data
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        return X.reshape(len(X), -1), Y.reshape(len(Y), -1)
    dataset = as_dataset(data)
    return dataset.inputs(), dataset.targets()

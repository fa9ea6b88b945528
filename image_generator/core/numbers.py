"""
Random value source and value encoding helpers.

All randomness in the package flows through a RandomSource so that a run can
be reproduced from a single seed, including the child seeds handed to worker
processes.
"""

from typing import Optional, Sequence, Tuple, Union, Any
import numpy as np


def encode(value, min: float = 0.0, max: float = 1.0):
    """Map a raw value from [min, max] onto [0, 1]."""
    return (value - min) / (max - min)


def decode(value, min: float = 0.0, max: float = 1.0):
    """Inverse of encode()."""
    return max * value - min * value + min


def round_to(number: float, decimals: int = 0) -> float:
    """Round to a fixed number of decimals, returning a plain float."""
    return float(round(float(number), decimals))


class RandomSource:
    """
    Bounded random integers/floats and probability trials.

    Wraps a numpy Generator. Pass a seed for reproducible runs.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.generator = np.random.default_rng(seed)

    def rand_int(self, min: int = 0, max: int = 1, inclusive: bool = False) -> int:
        """Uniform integer in [min, max) or [min, max] when inclusive."""
        high = max + 1 if inclusive else max
        if high <= min:
            raise ValueError(f"Empty integer range [{min}, {max}{']' if inclusive else ')'}")
        return int(self.generator.integers(min, high))

    def rand_float(
        self,
        min: float = 0.0,
        max: float = 1.0,
        decimals: Optional[int] = None,
    ) -> float:
        """Uniform float in [min, max), optionally rounded."""
        result = float(self.generator.uniform(min, max))
        if decimals is not None:
            return round_to(result, decimals)
        return result

    def probability(self, rate: float) -> bool:
        """True with probability `rate`."""
        return bool(self.generator.random() < rate)

    def coin(self) -> bool:
        """Fair coin flip."""
        return bool(self.generator.integers(0, 2))

    def choice(self, items: Sequence[Any]) -> Any:
        """Uniformly pick one element."""
        if len(items) == 0:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self.rand_int(max=len(items))]

    def bernoulli(self, shape: Union[int, Tuple[int, ...]], rate: float) -> np.ndarray:
        """Boolean mask where each entry is True with probability `rate`."""
        return self.generator.random(shape) < rate

    def coins(self, shape: Union[int, Tuple[int, ...]]) -> np.ndarray:
        """Boolean array of fair coin flips."""
        return self.generator.integers(0, 2, size=shape).astype(bool)

    def normal(self, shape: Union[int, Tuple[int, ...]], std: float = 1.0) -> np.ndarray:
        """Zero-mean gaussian samples."""
        return self.generator.normal(0.0, std, size=shape)

    def spawn_seed(self) -> int:
        """Draw a seed for a child RandomSource (e.g. in a worker process)."""
        return int(self.generator.integers(0, 2**31 - 1))

    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed})"

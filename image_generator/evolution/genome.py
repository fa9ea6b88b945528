"""
Genome representation for evolved image generators.

A Genome holds the hyperparameters that shape a network: its activation,
the binary threshold, the leaky ReLU slope and the hidden layer sizes. The
weights themselves live on the TrainedIndividual built from it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import uuid

from ..core.activations import ACTIVATION_NAMES
from ..core.numbers import RandomSource


def generate_individual_id(generation: int = 0, prefix: str = '') -> str:
    """Generate a unique individual identifier."""
    short_uuid = uuid.uuid4().hex[:8]
    if prefix:
        return f"{prefix}_gen{generation}_{short_uuid}"
    return f"gen{generation}_{short_uuid}"


@dataclass
class Genome:
    """
    Hyperparameters of one network.

    Attributes:
        activation: One of ACTIVATION_NAMES, used by every hidden layer
        binary_thresh: Threshold for turning outputs into 0/1
        leaky_relu_alpha: Negative slope for 'leaky-relu'
        hidden_layers: Neuron count per hidden layer, e.g. [16, 8, 4]
    """
    activation: str
    binary_thresh: float
    leaky_relu_alpha: float
    hidden_layers: List[int] = field(default_factory=list)

    def __post_init__(self):
        """Validate genome consistency."""
        if self.activation not in ACTIVATION_NAMES:
            raise ValueError(f"Unknown activation: {self.activation}")
        if not self.hidden_layers:
            raise ValueError("A genome needs at least one hidden layer")
        if any(int(n) < 1 for n in self.hidden_layers):
            raise ValueError(f"Hidden layer sizes must be >= 1, got {self.hidden_layers}")
        self.hidden_layers = [int(n) for n in self.hidden_layers]

    @property
    def depth(self) -> int:
        """Number of hidden layers."""
        return len(self.hidden_layers)

    @property
    def architecture_string(self) -> str:
        """Human-readable architecture description."""
        layers_str = '-'.join(str(n) for n in self.hidden_layers)
        return f"{self.activation}[{layers_str}]"

    def within_bounds(self, max_layers: int, max_neurons: int) -> bool:
        """Whether the hidden layer shape respects the structural limits."""
        return (
            1 <= self.depth <= max_layers
            and all(1 <= n <= max_neurons for n in self.hidden_layers)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'activation': self.activation,
            'binary_thresh': self.binary_thresh,
            'leaky_relu_alpha': self.leaky_relu_alpha,
            'hidden_layers': list(self.hidden_layers),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Genome':
        return cls(
            activation=data['activation'],
            binary_thresh=data['binary_thresh'],
            leaky_relu_alpha=data['leaky_relu_alpha'],
            hidden_layers=list(data['hidden_layers']),
        )

    def copy(self) -> 'Genome':
        return Genome(
            activation=self.activation,
            binary_thresh=self.binary_thresh,
            leaky_relu_alpha=self.leaky_relu_alpha,
            hidden_layers=self.hidden_layers.copy(),
        )


def make_random_genome(
    max_layers: int = 128,
    max_neurons: int = 128,
    rng: Optional[RandomSource] = None,
) -> Genome:
    """
    Create a random genome.

    - leaky_relu_alpha: uniform in [0.001, 0.1], 4 decimals
    - binary_thresh: uniform in [0.001, 0.999], 4 decimals
    - activation: uniform over ACTIVATION_NAMES
    - depth: uniform in [1, max_layers], each layer uniform in [1, max_neurons]

    Args:
        max_layers: Maximum number of hidden layers
        max_neurons: Maximum neurons per hidden layer
        rng: Random source

    Returns:
        A randomly initialized Genome
    """
    rng = rng or RandomSource()

    leaky_relu_alpha = rng.rand_float(min=0.001, max=0.1, decimals=4)
    binary_thresh = rng.rand_float(min=0.001, max=0.999, decimals=4)
    activation = rng.choice(ACTIVATION_NAMES)

    depth = rng.rand_int(min=1, max=max_layers, inclusive=True)
    hidden_layers = [
        rng.rand_int(min=1, max=max_neurons, inclusive=True)
        for _ in range(depth)
    ]

    return Genome(
        activation=activation,
        binary_thresh=binary_thresh,
        leaky_relu_alpha=leaky_relu_alpha,
        hidden_layers=hidden_layers,
    )

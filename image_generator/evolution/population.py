"""
Individuals and populations.

Handles:
- TrainedIndividual: a genome plus the weights produced by training
- Population: ordered individuals of one generation
- spawn(): fresh, untrained individuals from random genomes
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple
import math
import numpy as np

from ..core.network import NeuralNetwork
from ..core.numbers import RandomSource
from .genome import Genome, make_random_genome, generate_individual_id


class DataSizes(NamedTuple):
    """Input and output sizes every network in a run shares."""
    input_size: int
    output_size: int


@dataclass(eq=False)
class TrainedIndividual:
    """
    Serialized state of one network.

    weights[i] / biases[i] belong to layer i + 1 (the input layer has none);
    the last entry is the output layer. Only the internal layers (every
    layer but the output) are crossed over and mutated.

    Attributes:
        genome: Hyperparameters the network was built from
        input_size, output_size: Dataset dimensions
        weights, biases: Parameters per non-input layer
        train_options: Mirror of the options handed to training, including
            the genome hyperparameters
        error: Final training error (lower is better)
        fitness: Structural score derived after training (higher is better)
    """
    genome: Genome
    input_size: int
    output_size: int
    weights: List[np.ndarray]
    biases: List[np.ndarray]
    train_options: Dict[str, Any] = field(default_factory=dict)
    error: float = 1.0
    fitness: float = 0.0
    iterations: int = 0
    training_failed: bool = False
    individual_id: str = field(default_factory=generate_individual_id)
    generation: int = 0
    parents: Tuple[str, str] = ('random', 'random')

    @property
    def hidden_layers(self) -> List[int]:
        return self.genome.hidden_layers

    @property
    def internal_layers(self) -> range:
        """Indices into weights/biases of the layers open to crossover and mutation."""
        return range(len(self.weights) - 1)

    @property
    def data_sizes(self) -> DataSizes:
        return DataSizes(self.input_size, self.output_size)

    @classmethod
    def from_network(
        cls,
        network: NeuralNetwork,
        genome: Optional[Genome] = None,
        generation: int = 0,
        prefix: str = 'rand',
    ) -> 'TrainedIndividual':
        """Snapshot a network into an individual (parameters are copied)."""
        if genome is None:
            genome = Genome(
                activation=network.activation,
                binary_thresh=network.binary_thresh,
                leaky_relu_alpha=network.leaky_relu_alpha,
                hidden_layers=list(network.hidden_layers),
            )
        if not network.weights:
            network.initialize()
        return cls(
            genome=genome,
            input_size=network.input_size,
            output_size=network.output_size,
            weights=[W.copy() for W in network.weights],
            biases=[b.copy() for b in network.biases],
            train_options=dict(network.train_options),
            individual_id=generate_individual_id(generation, prefix),
            generation=generation,
        )

    def to_network(self, rng: Optional[RandomSource] = None) -> NeuralNetwork:
        """Rebuild a network carrying this individual's parameters."""
        network = NeuralNetwork.from_genome(self.genome, self.input_size, self.output_size, rng=rng)
        network.weights = [W.copy() for W in self.weights]
        network.biases = [b.copy() for b in self.biases]
        network.train_options = dict(self.train_options)
        return network

    def run(self, input) -> np.ndarray:
        """Inference with this individual's parameters."""
        return self.to_network().run(input)

    def copy(self) -> 'TrainedIndividual':
        """Deep copy; parameters are never shared between individuals."""
        return TrainedIndividual(
            genome=self.genome.copy(),
            input_size=self.input_size,
            output_size=self.output_size,
            weights=[W.copy() for W in self.weights],
            biases=[b.copy() for b in self.biases],
            train_options=dict(self.train_options),
            error=self.error,
            fitness=self.fitness,
            iterations=self.iterations,
            training_failed=self.training_failed,
            individual_id=self.individual_id,
            generation=self.generation,
            parents=self.parents,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            'genome': self.genome.to_dict(),
            'input_size': self.input_size,
            'output_size': self.output_size,
            'weights': [W.tolist() for W in self.weights],
            'biases': [b.tolist() for b in self.biases],
            'train_options': dict(self.train_options),
            'error': self.error,
            'fitness': self.fitness,
            'iterations': self.iterations,
            'training_failed': self.training_failed,
            'individual_id': self.individual_id,
            'generation': self.generation,
            'parents': list(self.parents),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainedIndividual':
        """Create from dictionary (e.g., loaded from JSON)."""
        return cls(
            genome=Genome.from_dict(data['genome']),
            input_size=data['input_size'],
            output_size=data['output_size'],
            weights=[np.array(W, dtype=float) for W in data['weights']],
            biases=[np.array(b, dtype=float) for b in data['biases']],
            train_options=dict(data.get('train_options', {})),
            error=data.get('error', 1.0),
            fitness=data.get('fitness', 0.0),
            iterations=data.get('iterations', 0),
            training_failed=data.get('training_failed', False),
            individual_id=data['individual_id'],
            generation=data.get('generation', 0),
            parents=tuple(data.get('parents', ('random', 'random'))),
        )

    def __repr__(self) -> str:
        error_str = f"{self.error:.5f}" if math.isfinite(self.error) else str(self.error)
        return (
            f"TrainedIndividual(id={self.individual_id}, arch={self.genome.architecture_string}, "
            f"error={error_str}, fitness={self.fitness:.3f})"
        )


@dataclass
class Population:
    """Ordered individuals of one generation."""
    individuals: List[TrainedIndividual] = field(default_factory=list)
    generation: int = 0

    def __len__(self) -> int:
        return len(self.individuals)

    def __iter__(self) -> Iterator[TrainedIndividual]:
        return iter(self.individuals)

    def __getitem__(self, index: int) -> TrainedIndividual:
        return self.individuals[index]

    @property
    def best(self) -> Optional[TrainedIndividual]:
        """First individual; only meaningful after sort()."""
        return self.individuals[0] if self.individuals else None

    def sort(self) -> 'Population':
        """Sort in place: lowest error first, ties broken by highest fitness."""
        from .fitness import ranking_key

        self.individuals.sort(key=ranking_key)
        return self

    def truncate(self, size: int) -> 'Population':
        del self.individuals[size:]
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generation': self.generation,
            'individuals': [ind.to_dict() for ind in self.individuals],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Population':
        return cls(
            individuals=[TrainedIndividual.from_dict(d) for d in data['individuals']],
            generation=data.get('generation', 0),
        )


def spawn(
    size: int,
    data_sizes: DataSizes,
    max_layers: int = 128,
    max_neurons: int = 128,
    rng: Optional[RandomSource] = None,
    generation: int = 0,
) -> Population:
    """
    Create `size` freshly initialized, untrained individuals.

    Args:
        size: Number of individuals
        data_sizes: Input/output sizes of the dataset
        max_layers: Maximum hidden layers per genome
        max_neurons: Maximum neurons per hidden layer
        rng: Random source
        generation: Generation number recorded on the individuals

    Returns:
        Population of random individuals
    """
    rng = rng or RandomSource()
    individuals = []
    for _ in range(size):
        genome = make_random_genome(max_layers=max_layers, max_neurons=max_neurons, rng=rng)
        network = NeuralNetwork.from_genome(
            genome, data_sizes.input_size, data_sizes.output_size, rng=rng
        ).initialize()
        individuals.append(
            TrainedIndividual.from_network(network, genome=genome, generation=generation)
        )
    return Population(individuals=individuals, generation=generation)

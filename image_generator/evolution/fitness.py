"""
Fitness evaluation and ranking.

Two scores describe a trained individual:
- error: final training error reported by the network (lower is better)
- fitness: structural score, higher for smaller networks

Individuals are ranked by error first; among equal errors the leaner
network wins.
"""

from typing import Iterable, List, Tuple, TYPE_CHECKING
import math

if TYPE_CHECKING:
    from .population import Population, TrainedIndividual


def structural_fitness(hidden_layers: List[int], max_layers: int, max_neurons: int) -> float:
    """
    Score a hidden layer shape; 1.0 for an empty network, 0.0 at the limits.

    fitness = 1 - (sum(neurons / max_neurons)) / max_layers

    Args:
        hidden_layers: Neuron count per hidden layer
        max_layers: Maximum hidden layers allowed in the run
        max_neurons: Maximum neurons per layer allowed in the run

    Returns:
        Fitness in [0, 1] for shapes within the limits
    """
    total = sum(n / max_neurons for n in hidden_layers)
    return 1 - total / max_layers


def evaluate_fitness(
    individual: 'TrainedIndividual',
    max_layers: int,
    max_neurons: int,
) -> float:
    """Compute and store the structural fitness of one individual."""
    individual.fitness = structural_fitness(individual.hidden_layers, max_layers, max_neurons)
    return individual.fitness


def evaluate_population(
    individuals: Iterable['TrainedIndividual'],
    max_layers: int,
    max_neurons: int,
) -> None:
    for individual in individuals:
        evaluate_fitness(individual, max_layers, max_neurons)


def ranking_key(individual: 'TrainedIndividual') -> Tuple[float, float]:
    """Sort key: ascending error (non-finite counts as worst), then descending fitness."""
    error = individual.error
    if error is None or not math.isfinite(error):
        error = math.inf
    return (error, -individual.fitness)


def sort_population(population: 'Population') -> 'Population':
    """Sort a population in place, best first."""
    return population.sort()


def elite_count(population_size: int, elitism: float) -> int:
    """Number of individuals kept as breeding stock; never fewer than 2."""
    return max(2, math.floor(population_size * elitism))

"""
Evolutionary operators: selection, crossover, mutation and breeding.

These operators turn a sorted, trained population into the next one:
- select_elite keeps the best individuals as breeding stock
- mate crosses the internal layers of two individuals over
- mutate perturbs parameters and hyperparameters of one individual
- breed fills a new generation from elite children and fresh randoms
"""

from typing import List, Optional, Tuple, TYPE_CHECKING
import math
import numpy as np
from loguru import logger

from ..core.activations import ACTIVATION_NAMES
from ..core.numbers import RandomSource
from ..core.sequences import create_distribution, crossover
from .genome import generate_individual_id
from .population import DataSizes, Population, TrainedIndividual, spawn

if TYPE_CHECKING:
    from .config import EvolutionConfig


# Relative positions of the crossover pivots inside a layer
CROSSOVER_POINTS = (0.25, 0.5, 0.75)

# Size of the expanded list the mutated activation is drawn from
ACTIVATION_DISTRIBUTION_SIZE = 100


# =============================================================================
# Selection
# =============================================================================

def select_elite(population: Population, count: int) -> List[TrainedIndividual]:
    """
    Take the first `count` individuals of a sorted population.

    Returns fewer when the population is smaller. The individuals are not
    copied; breed() copies them before changing anything.
    """
    return list(population.individuals[:count])


# =============================================================================
# Crossover
# =============================================================================

def crossover_pivots(length: int) -> List[int]:
    """Pivots at a quarter, half and three quarters of `length` (floored)."""
    return [math.floor(length * point) for point in CROSSOVER_POINTS]


def mate(
    individual_a: TrainedIndividual,
    individual_b: TrainedIndividual,
) -> Tuple[TrainedIndividual, TrainedIndividual]:
    """
    Multi-point crossover of two individuals, in place.

    Every internal layer both individuals have is crossed over: the rows
    (neurons) of the overlapping weight block, limited to the smaller fan-in,
    and the bias vectors. Layers past the shallower individual are left alone.

    Args:
        individual_a: First parent, becomes the first child
        individual_b: Second parent, becomes the second child

    Returns:
        (individual_a, individual_b)
    """
    layer_count = min(len(individual_a.internal_layers), len(individual_b.internal_layers))

    for i in range(layer_count):
        weights_a = individual_a.weights[i]
        weights_b = individual_b.weights[i]
        cols = min(weights_a.shape[1], weights_b.shape[1])
        rows = min(weights_a.shape[0], weights_b.shape[0])

        # Slices of the column range are views, so crossover writes through
        crossover(weights_a[:, :cols], weights_b[:, :cols], crossover_pivots(rows))

        biases_length = min(len(individual_a.biases[i]), len(individual_b.biases[i]))
        crossover(individual_a.biases[i], individual_b.biases[i], crossover_pivots(biases_length))

    return individual_a, individual_b


# =============================================================================
# Mutation
# =============================================================================

def _scale_selected(values: np.ndarray, rate: float, rng: RandomSource) -> None:
    """Scale each value by (1 + rate) or (1 - rate) with probability `rate`, in place."""
    selected = rng.bernoulli(values.shape, rate)
    if not selected.any():
        return
    factors = np.where(rng.coins(values.shape), 1 + rate, 1 - rate)
    values[selected] *= factors[selected]


def _scale(value: float, rate: float, rng: RandomSource) -> float:
    return value * (1 + rate) if rng.coin() else value * (1 - rate)


def mutate(
    individual: TrainedIndividual,
    rate: float = 0.1,
    rng: Optional[RandomSource] = None,
) -> TrainedIndividual:
    """
    Mutate an individual in place.

    - Each weight and bias of the internal layers is picked with probability
      `rate` and scaled by (1 + rate) or (1 - rate) on a coin flip.
    - The activation is redrawn, keeping the current one with weight
      (4 - rate) against rate / 3 for each alternative.
    - binary_thresh and leaky_relu_alpha are scaled by (1 +/- rate). A
      leaky_relu_alpha pushed outside [0, 1] is scaled the other way instead.

    Args:
        individual: Individual to mutate
        rate: Mutation rate in [0, 1]
        rng: Random source

    Returns:
        The same individual
    """
    rng = rng or RandomSource()
    genome = individual.genome

    for i in individual.internal_layers:
        _scale_selected(individual.weights[i], rate, rng)
        _scale_selected(individual.biases[i], rate, rng)

    # Activation
    others = [name for name in ACTIVATION_NAMES if name != genome.activation]
    part = rate / len(others)
    distribution = create_distribution(
        [genome.activation, *others],
        [len(ACTIVATION_NAMES) - rate] + [part] * len(others),
        ACTIVATION_DISTRIBUTION_SIZE,
    )
    genome.activation = rng.choice(distribution)

    # Binary threshold
    genome.binary_thresh = _scale(genome.binary_thresh, rate, rng)

    # Leaky ReLU slope
    alpha = genome.leaky_relu_alpha
    mutated_alpha = _scale(alpha, rate, rng)
    if mutated_alpha > 1:
        mutated_alpha = alpha * (1 - rate)
    elif mutated_alpha < 0:
        mutated_alpha = alpha * (1 + rate)
    genome.leaky_relu_alpha = mutated_alpha

    individual.train_options.update({
        'activation': genome.activation,
        'binary_thresh': genome.binary_thresh,
        'leaky_relu_alpha': genome.leaky_relu_alpha,
    })
    return individual


# =============================================================================
# Breeding
# =============================================================================

def breed(
    elite: List[TrainedIndividual],
    data_sizes: DataSizes,
    config: 'EvolutionConfig',
    rng: Optional[RandomSource] = None,
    generation: int = 0,
) -> Population:
    """
    Create the next generation from the elite.

    With N = population_size, rands = ceil(N - N * mix_rands) fresh random
    individuals are added after N - rands mating rounds. Each round draws two
    parents uniformly (with replacement) from the elite, mates copies of them
    and mutates both children. The result is truncated to N, or padded with
    random individuals when the elite is empty.

    Args:
        elite: Breeding stock, best first
        data_sizes: Input/output sizes of the dataset
        config: Evolution configuration (population_size, mix_rands,
            mutation_rate, max_layers, max_neurons)
        rng: Random source
        generation: Generation number recorded on the children

    Returns:
        New, untrained Population of exactly population_size individuals
    """
    rng = rng or RandomSource()
    size = config.population_size
    rands = math.ceil(size - size * config.mix_rands)

    brood: List[TrainedIndividual] = []
    if elite:
        for _ in range(size - rands):
            parent_a = elite[rng.rand_int(max=len(elite))]
            parent_b = elite[rng.rand_int(max=len(elite))]
            child_a, child_b = mate(parent_a.copy(), parent_b.copy())
            for child in (child_a, child_b):
                mutate(child, config.mutation_rate, rng)
                child.individual_id = generate_individual_id(generation, 'child')
                child.generation = generation
                child.parents = (parent_a.individual_id, parent_b.individual_id)
                child.error = 1.0
                child.iterations = 0
                child.training_failed = False
                brood.append(child)
    else:
        rands = size

    randoms = spawn(
        max(rands, size - len(brood)),
        data_sizes,
        max_layers=config.max_layers,
        max_neurons=config.max_neurons,
        rng=rng,
        generation=generation,
    )
    brood.extend(randoms.individuals)

    logger.debug(
        "Bred generation {}: {} children, {} random, kept {}",
        generation, len(brood) - len(randoms), len(randoms), min(len(brood), size),
    )
    return Population(individuals=brood[:size], generation=generation)

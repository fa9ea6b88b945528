"""
Neuroevolution of image generators.

This module provides a genetic algorithm that evolves small feed-forward
networks (their shape, hyperparameters and weights) toward a dataset.

Key components:
- Genome: Hyperparameters of one network
- TrainedIndividual / Population: Trained networks of one generation
- Operators: Elite selection, crossover, mutation and breeding
- Evolver: Main generation loop

Example usage:
    from image_generator.evolution import Evolver, EvolutionConfig
    from image_generator.datasets import get_dataset

    dataset = get_dataset('gradients', n_images=4, width=4, height=4)
    config = EvolutionConfig(population_size=32, max_generations=50,
                             max_layers=3, max_neurons=16, n_workers=4)

    result = Evolver().evolve(dataset, config)
    print(result.summary())
"""

from .genome import Genome, make_random_genome, generate_individual_id
from .population import DataSizes, TrainedIndividual, Population, spawn
from .fitness import (
    structural_fitness,
    evaluate_fitness,
    ranking_key,
    sort_population,
    elite_count,
)
from .operators import select_elite, mate, mutate, breed, crossover_pivots
from .config import EvolutionConfig
from .engine import (
    Evolver,
    EvolutionStatus,
    EvolutionProgress,
    EvolutionResult,
    EvolutionState,
    CancellationToken,
)
from .checkpoint import (
    EvolutionCheckpoint,
    EvolutionHistory,
    GenerationStats,
    save_individual,
    load_individual,
)

__all__ = [
    # Core classes
    'Genome',
    'TrainedIndividual',
    'Population',
    'DataSizes',
    'EvolutionConfig',
    'Evolver',
    'EvolutionStatus',
    'EvolutionProgress',
    'EvolutionResult',
    'EvolutionState',
    'CancellationToken',
    'EvolutionCheckpoint',
    'EvolutionHistory',
    'GenerationStats',
    # Genome helpers
    'make_random_genome',
    'generate_individual_id',
    'spawn',
    # Fitness
    'structural_fitness',
    'evaluate_fitness',
    'ranking_key',
    'sort_population',
    'elite_count',
    # Operators
    'select_elite',
    'mate',
    'mutate',
    'breed',
    'crossover_pivots',
    # Persistence
    'save_individual',
    'load_individual',
]

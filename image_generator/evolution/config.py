"""
Configuration for evolution runs.
"""

from dataclasses import dataclass, field, replace
from multiprocessing import cpu_count
from typing import Any, Dict, Optional

from loguru import logger

from ..core.training import TrainingOptions
from ..exceptions import InvalidConfigurationError

# Smallest population evolve() will run with
MIN_POPULATION_SIZE = 2


@dataclass
class EvolutionConfig:
    """Configuration for an evolution run."""
    # Population parameters
    population_size: int = 128
    elitism: float = 1 / 10          # fraction of the population kept as breeding stock
    mix_rands: float = 1 / 3         # fraction of the next generation bred from the elite

    # Evolution rates
    max_generations: int = 1024
    mutation_rate: float = 1 / 10

    # Architecture constraints
    max_layers: int = 128
    max_neurons: int = 128

    # Per-individual training
    training: TrainingOptions = field(default_factory=TrainingOptions)

    # Progress reporting, in generations
    callback_period: int = 10

    # Checkpointing (disabled unless checkpoint_dir is set)
    checkpoint_dir: Optional[str] = None
    checkpoint_every: int = 0

    # Parallelization
    n_workers: Optional[int] = None

    # Reproducibility
    seed: Optional[int] = None

    @property
    def error_threshold(self) -> float:
        """Error at or below which the run counts as converged."""
        return self.training.error_thresh

    @property
    def workers(self) -> int:
        """Worker process count; defaults to all cores but one."""
        return self.n_workers or max(1, cpu_count() - 1)

    def normalized(self) -> 'EvolutionConfig':
        """
        Validate and return a usable copy of this configuration.

        A population_size below 1 is raised to MIN_POPULATION_SIZE with a
        warning. Every other out-of-range value raises.

        Raises:
            InvalidConfigurationError
        """
        config = replace(self, training=replace(self.training))

        if config.population_size < 1:
            logger.warning(
                "population_size {} is below 1, using {}",
                config.population_size, MIN_POPULATION_SIZE,
            )
            config.population_size = MIN_POPULATION_SIZE

        if not 0 < config.elitism <= 1:
            raise InvalidConfigurationError(f"elitism must be in (0, 1], got {config.elitism}")
        if not 0 <= config.mix_rands <= 1:
            raise InvalidConfigurationError(f"mix_rands must be in [0, 1], got {config.mix_rands}")
        if config.max_generations < 1:
            raise InvalidConfigurationError(
                f"max_generations must be > 0, got {config.max_generations}"
            )
        if not 0 <= config.mutation_rate <= 1:
            raise InvalidConfigurationError(
                f"mutation_rate must be in [0, 1], got {config.mutation_rate}"
            )
        if config.max_layers < 1 or config.max_neurons < 1:
            raise InvalidConfigurationError("max_layers and max_neurons must be >= 1")
        if config.callback_period < 1:
            raise InvalidConfigurationError("callback_period must be >= 1")
        if config.checkpoint_every < 0:
            raise InvalidConfigurationError("checkpoint_every must be >= 0")
        if config.n_workers is not None and config.n_workers < 1:
            raise InvalidConfigurationError("n_workers must be >= 1")
        config.training.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            'population_size': self.population_size,
            'elitism': self.elitism,
            'mix_rands': self.mix_rands,
            'max_generations': self.max_generations,
            'mutation_rate': self.mutation_rate,
            'max_layers': self.max_layers,
            'max_neurons': self.max_neurons,
            'training': self.training.to_dict(),
            'callback_period': self.callback_period,
            'checkpoint_dir': self.checkpoint_dir,
            'checkpoint_every': self.checkpoint_every,
            'n_workers': self.n_workers,
            'seed': self.seed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionConfig':
        data = dict(data)
        training = data.pop('training', None)
        if isinstance(training, dict):
            data['training'] = TrainingOptions.from_dict(training)
        elif training is not None:
            data['training'] = training
        return cls(**data)

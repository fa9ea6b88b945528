"""
Checkpointing and history for evolution runs.

Enables:
- Recording generation-by-generation statistics
- Saving the state of a run (config, best individual, history) as JSON
- Saving and loading single trained individuals
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence, Union
from pathlib import Path
from datetime import datetime
import json
import math
import uuid

import numpy as np
from filelock import FileLock

from .population import TrainedIndividual


def _lock_for(path: Path) -> FileLock:
    """File lock guarding reads and writes of `path`."""
    return FileLock(str(path) + '.lock')


@dataclass
class GenerationStats:
    """Statistics for a single generation."""
    generation: int
    best_error: float
    mean_error: float
    best_fitness: float
    mean_fitness: float
    population_size: int
    failed_evaluations: int
    mean_depth: float
    best_id: Optional[str]
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EvolutionHistory:
    """
    Tracks evolution progress over generations.

    Records per-generation statistics for analysis and plotting.
    """

    def __init__(self):
        self.generations: List[GenerationStats] = []

    def __len__(self) -> int:
        return len(self.generations)

    def record_generation(
        self,
        generation: int,
        population: Sequence[TrainedIndividual],
        failed: int = 0,
    ) -> GenerationStats:
        """
        Record statistics for a completed generation.

        Args:
            generation: Generation number
            population: Sorted, evaluated individuals (failures excluded)
            failed: Number of individuals whose training failed

        Returns:
            GenerationStats for this generation
        """
        errors = [ind.error for ind in population if math.isfinite(ind.error)]
        fitnesses = [ind.fitness for ind in population]

        stats = GenerationStats(
            generation=generation,
            best_error=min(errors) if errors else math.inf,
            mean_error=float(np.mean(errors)) if errors else math.inf,
            best_fitness=max(fitnesses) if fitnesses else 0.0,
            mean_fitness=float(np.mean(fitnesses)) if fitnesses else 0.0,
            population_size=len(population),
            failed_evaluations=failed,
            mean_depth=float(np.mean([ind.genome.depth for ind in population])) if population else 0.0,
            best_id=population[0].individual_id if population else None,
            timestamp=datetime.now().isoformat(),
        )
        self.generations.append(stats)
        return stats

    @property
    def error_trajectory(self) -> List[float]:
        """Best error per generation."""
        return [g.best_error for g in self.generations]

    @property
    def fitness_trajectory(self) -> List[float]:
        """Best structural fitness per generation."""
        return [g.best_fitness for g in self.generations]

    @property
    def total_failures(self) -> int:
        return sum(g.failed_evaluations for g in self.generations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert history to dictionary for serialization."""
        return {
            'generations': [g.to_dict() for g in self.generations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionHistory':
        """Restore history from dictionary."""
        history = cls()
        history.generations = [
            GenerationStats(**g) for g in data.get('generations', [])
        ]
        return history


@dataclass
class EvolutionCheckpoint:
    """
    Snapshot of an evolution run.

    Contains the configuration, the best individual found so far and the
    generation history.
    """
    run_id: str
    generation: int
    status: str
    config: Dict[str, Any]
    best: Optional[Dict[str, Any]]      # Serialized TrainedIndividual
    history: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionCheckpoint':
        """Create from dictionary."""
        return cls(**data)

    def save(self, path: Union[str, Path]) -> Path:
        """Save checkpoint to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with _lock_for(path):
            path.write_text(json.dumps(self.to_dict(), indent=2))
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'EvolutionCheckpoint':
        """Load checkpoint from a JSON file."""
        path = Path(path)
        with _lock_for(path):
            data = json.loads(path.read_text())
        return cls.from_dict(data)

    def get_best(self) -> Optional[TrainedIndividual]:
        """Deserialize the best individual."""
        if self.best is None:
            return None
        return TrainedIndividual.from_dict(self.best)

    def get_history(self) -> EvolutionHistory:
        return EvolutionHistory.from_dict(self.history)


def save_individual(individual: TrainedIndividual, path: Union[str, Path]) -> Path:
    """Write one trained individual to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with _lock_for(path):
        path.write_text(json.dumps(individual.to_dict(), indent=2))
    return path


def load_individual(path: Union[str, Path]) -> TrainedIndividual:
    """Read a trained individual written by save_individual()."""
    path = Path(path)
    with _lock_for(path):
        data = json.loads(path.read_text())
    return TrainedIndividual.from_dict(data)


def generate_run_id() -> str:
    """Generate unique run identifier."""
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    short_uuid = uuid.uuid4().hex[:6]
    return f"evo_{timestamp}_{short_uuid}"

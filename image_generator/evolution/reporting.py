"""
Text formatting for evolution runs.

Used by the engine's log lines and by EvolutionResult.summary().
"""

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import EvolutionConfig
    from .engine import EvolutionProgress, EvolutionResult


def _format_error(error: float) -> str:
    if error is None or not math.isfinite(error):
        return 'n/a'
    return f"{error:.6f}"


def format_config(config: 'EvolutionConfig') -> str:
    """One-line description of a run's configuration."""
    return (
        f"population={config.population_size} elitism={config.elitism:.3f} "
        f"mix_rands={config.mix_rands:.3f} mutation_rate={config.mutation_rate:.3f} "
        f"max_generations={config.max_generations} "
        f"max_layers={config.max_layers} max_neurons={config.max_neurons} "
        f"error_thresh={config.error_threshold} iterations={config.training.iterations} "
        f"workers={config.workers}"
    )


def format_progress(progress: 'EvolutionProgress') -> str:
    """One-line description of a finished generation."""
    line = f"generation {progress.generation}: error {_format_error(progress.error)}"
    if progress.best is not None:
        line += (
            f", best {progress.best.genome.architecture_string}"
            f" (fitness {progress.best.fitness:.4f})"
        )
    if progress.failed:
        line += f", {progress.failed} failed"
    return line


def summarize_result(result: 'EvolutionResult') -> str:
    """Multi-line summary of a finished run."""
    lines = [
        f"Evolution Run: {result.run_id}",
        f"Status: {result.status.value}",
        f"Generations: {result.generations}",
        f"Best error: {_format_error(result.error)}",
        f"Runtime: {result.runtime_seconds:.1f}s",
    ]
    if result.best is not None:
        lines.append(f"Best architecture: {result.best.genome.architecture_string}")
        lines.append(f"Best fitness: {result.best.fitness:.4f}")
    if result.history is not None and result.history.total_failures:
        lines.append(f"Failed trainings: {result.history.total_failures}")
    if result.failure is not None:
        lines.append(f"Failure: {result.failure}")
    return '\n'.join(lines)

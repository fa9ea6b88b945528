"""
Main evolution engine.

Orchestrates the generation loop:
1. Spawn a random population
2. Train every individual (parallel)
3. Score structural fitness and sort
4. Stop on cancellation, convergence or exhausted generations
5. Otherwise select the elite and breed the next generation
6. Report progress and checkpoint
"""

from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum
from multiprocessing import Pool
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
import math
import sys
import threading
import time

import numpy as np
from loguru import logger

from ..core.numbers import RandomSource
from ..core.training import TrainingOptions
from ..datasets.data import DataLike, as_dataset
from ..exceptions import EmptyPopulationError
from .checkpoint import EvolutionCheckpoint, EvolutionHistory, generate_run_id
from .config import EvolutionConfig
from .fitness import elite_count, evaluate_population
from .operators import breed, select_elite
from .population import DataSizes, Population, TrainedIndividual, spawn
from .reporting import format_config, format_progress, summarize_result


class EvolutionStatus(str, Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    CONVERGED = 'converged'
    EXHAUSTED = 'exhausted'
    CANCELLED = 'cancelled'
    EMPTY = 'empty'

    @property
    def terminal(self) -> bool:
        return self not in (EvolutionStatus.IDLE, EvolutionStatus.RUNNING)


class CancellationToken:
    """
    Cooperative stop signal for evolve().

    The engine checks it once per generation, after training, so a cancelled
    run returns within one generation.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ResourceUsage:
    """Process resource snapshot; peak_rss is None where the platform lacks it."""
    cpu_time: float
    peak_rss: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'cpu_time': self.cpu_time, 'peak_rss': self.peak_rss}


def snapshot_resources() -> ResourceUsage:
    """CPU time of this process and its peak resident set size."""
    peak_rss = None
    if sys.platform != 'win32':
        import resource

        # kilobytes on Linux, bytes on macOS
        peak_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    return ResourceUsage(cpu_time=time.process_time(), peak_rss=peak_rss)


@dataclass
class EvolutionProgress:
    """What the progress callback receives after a generation."""
    generation: int
    error: float
    best: Optional[TrainedIndividual]
    population_size: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generation': self.generation,
            'error': self.error,
            'best': self.best.to_dict() if self.best is not None else None,
            'population_size': self.population_size,
            'failed': self.failed,
        }


@dataclass
class EvolutionState:
    """Mutable state of the evolve() call in progress."""
    generation: int = 0
    best: Optional[TrainedIndividual] = None
    error: float = 1.0
    status: EvolutionStatus = EvolutionStatus.IDLE
    resources: Optional[ResourceUsage] = None

    @property
    def running(self) -> bool:
        return self.status == EvolutionStatus.RUNNING


@dataclass
class EvolutionResult:
    """Results from an evolution run."""
    run_id: str
    status: EvolutionStatus
    best: Optional[TrainedIndividual]
    error: float
    generations: int
    history: EvolutionHistory
    runtime_seconds: float
    failure: Optional[EmptyPopulationError] = None
    resources: Optional[ResourceUsage] = None

    @property
    def succeeded(self) -> bool:
        """True when a best individual is available."""
        return self.best is not None

    def summary(self) -> str:
        return summarize_result(self)


ProgressCallback = Callable[[EvolutionProgress], None]


# =============================================================================
# Worker
# =============================================================================

def train_individual(
    individual: Dict[str, Any],
    inputs: np.ndarray,
    targets: np.ndarray,
    training: Dict[str, Any],
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Train one serialized individual and return it serialized, with its
    trained parameters, error and iteration count.
    """
    trained = TrainedIndividual.from_dict(individual)
    network = trained.to_network(rng=RandomSource(seed))
    outcome = network.train((inputs, targets), TrainingOptions.from_dict(training))

    trained.weights = network.weights
    trained.biases = network.biases
    trained.train_options = network.train_options
    trained.error = outcome['error']
    trained.iterations = outcome['iterations']
    return trained.to_dict()


def _train_worker(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Worker function for parallel training.

    Module-level so it pickles for multiprocessing. Any failure becomes a
    failure record so one individual cannot abort the generation.
    """
    try:
        return {'ok': True, 'individual': train_individual(**payload)}
    except Exception as e:
        return {'ok': False, 'error': f"{type(e).__name__}: {e}"}


# =============================================================================
# Engine
# =============================================================================

class Evolver:
    """
    Evolves a population of networks toward a dataset.

    One Evolver runs one evolve() call at a time; its state, population and
    history describe the latest call.
    """

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id or generate_run_id()
        self.state = EvolutionState()
        self.population = Population()
        self.history = EvolutionHistory()
        self.checkpoint_dir: Optional[Path] = None

    @property
    def running(self) -> bool:
        return self.state.running

    def evolve(
        self,
        data: DataLike,
        config: Optional[EvolutionConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> EvolutionResult:
        """
        Run evolution until convergence, cancellation or max_generations.

        Args:
            data: Dataset, list of {'input', 'output'} pairs or (X, Y) arrays
            config: Evolution configuration (defaults if omitted)
            progress_callback: Called with an EvolutionProgress every
                config.callback_period generations and after the last one
            cancel_token: Token to stop the run at the next generation boundary

        Returns:
            EvolutionResult; best is None when no individual survived

        Raises:
            InvalidDatasetError: data is empty or malformed
            InvalidConfigurationError: config is out of range
        """
        dataset = as_dataset(data)
        config = (config or EvolutionConfig()).normalized()
        cancel_token = cancel_token or CancellationToken()

        rng = RandomSource(config.seed)
        data_sizes = DataSizes(dataset.input_size, dataset.output_size)
        inputs, targets = dataset.inputs(), dataset.targets()
        training = config.training.to_dict()
        self.checkpoint_dir = Path(config.checkpoint_dir) if config.checkpoint_dir else None

        logger.info("Starting evolution run {}: {}", self.run_id, format_config(config))
        start_time = time.time()

        self.history = EvolutionHistory()
        self.state = EvolutionState(status=EvolutionStatus.RUNNING)
        self.population = spawn(
            config.population_size,
            data_sizes,
            max_layers=config.max_layers,
            max_neurons=config.max_neurons,
            rng=rng,
        )
        failure: Optional[EmptyPopulationError] = None
        workers = config.workers

        with (Pool(workers) if workers > 1 else nullcontext()) as pool:
            generation = 0
            while not self.state.status.terminal:
                generation += 1

                # 1. Train
                evaluated, failed = self._train_population(inputs, targets, training, rng, pool)

                # 2-3. Score and sort
                evaluate_population(evaluated, config.max_layers, config.max_neurons)
                evaluated = Population(individuals=evaluated, generation=generation).sort()
                self.history.record_generation(generation, evaluated.individuals, failed)

                # 4. Record
                self.state.generation = generation
                self.state.resources = snapshot_resources()
                if len(evaluated) == 0:
                    failure = EmptyPopulationError(
                        f"No individual survived training in generation {generation}",
                        context={'generation': generation, 'failed': failed},
                    )
                    logger.error("{}", failure)
                    self.state.best = None
                    self.state.error = math.inf
                    self.state.status = EvolutionStatus.EMPTY
                else:
                    self.state.best = evaluated.best
                    self.state.error = evaluated.best.error

                # 5. Decide
                if self.state.status.terminal:
                    pass
                elif cancel_token.cancelled:
                    self.state.status = EvolutionStatus.CANCELLED
                elif self.state.error <= config.error_threshold:
                    self.state.status = EvolutionStatus.CONVERGED
                elif generation >= config.max_generations:
                    self.state.status = EvolutionStatus.EXHAUSTED
                else:
                    elite = select_elite(
                        evaluated, elite_count(config.population_size, config.elitism)
                    )
                    self.population = breed(
                        elite, data_sizes, config, rng=rng, generation=generation
                    )

                # 6. Report
                progress = EvolutionProgress(
                    generation=generation,
                    error=self.state.error,
                    best=self.state.best,
                    population_size=len(evaluated),
                    failed=failed,
                )
                logger.info("{}", format_progress(progress))
                if progress_callback is not None and (
                    generation % config.callback_period == 0 or self.state.status.terminal
                ):
                    progress_callback(progress)

                if (
                    self.checkpoint_dir is not None
                    and config.checkpoint_every
                    and generation % config.checkpoint_every == 0
                    and not self.state.status.terminal
                ):
                    self.save_checkpoint(config)

        runtime = time.time() - start_time
        if self.checkpoint_dir is not None:
            self.save_checkpoint(config)

        result = EvolutionResult(
            run_id=self.run_id,
            status=self.state.status,
            best=self.state.best,
            error=self.state.error,
            generations=self.state.generation,
            history=self.history,
            runtime_seconds=runtime,
            failure=failure,
            resources=self.state.resources,
        )
        logger.info(
            "Evolution run {} finished: {} after {} generations",
            self.run_id, result.status.value, result.generations,
        )
        return result

    def _train_population(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        training: Dict[str, Any],
        rng: RandomSource,
        pool=None,
    ) -> Tuple[List[TrainedIndividual], int]:
        """
        Train the current population.

        Results come back in population order. Failed individuals are logged,
        counted and left out of the returned list.

        Returns:
            (trained individuals, number of failures)
        """
        payloads = [
            {
                'individual': individual.to_dict(),
                'inputs': inputs,
                'targets': targets,
                'training': training,
                'seed': rng.spawn_seed(),
            }
            for individual in self.population
        ]

        if pool is not None:
            results = pool.map(_train_worker, payloads)
        else:
            results = [_train_worker(payload) for payload in payloads]

        trained = []
        failed = 0
        for individual, result in zip(self.population, results):
            if result['ok']:
                trained.append(TrainedIndividual.from_dict(result['individual']))
            else:
                failed += 1
                individual.error = math.inf
                individual.training_failed = True
                logger.warning(
                    "Training failed for {}: {}", individual.individual_id, result['error']
                )
        return trained, failed

    def save_checkpoint(self, config: EvolutionConfig) -> Path:
        """Save the current run state to checkpoint_dir."""
        checkpoint = EvolutionCheckpoint(
            run_id=self.run_id,
            generation=self.state.generation,
            status=self.state.status.value,
            config=config.to_dict(),
            best=self.state.best.to_dict() if self.state.best is not None else None,
            history=self.history.to_dict(),
        )
        path = self.checkpoint_dir / f"{self.run_id}_gen{self.state.generation:03d}.json"
        checkpoint.save(path)
        logger.debug("Saved checkpoint {}", path)
        return path

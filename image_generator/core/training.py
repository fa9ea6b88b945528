"""
Gradient-descent training for evolved networks.

Training stops when the iteration budget is spent, the error drops to
error_thresh, or the timeout elapses, whichever comes first.
"""

import math
import time
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING
import numpy as np
from loguru import logger

from ..exceptions import InvalidConfigurationError, TrainingFailure

if TYPE_CHECKING:
    from .network import NeuralNetwork


@dataclass
class TrainingOptions:
    """Options handed to the trainable network for one training run."""
    iterations: int = 20000          # maximum passes over the training data
    error_thresh: float = 0.005      # stop once the error reaches this value
    learning_rate: float = 0.3
    momentum: float = 0.1
    timeout: float = math.inf        # seconds
    callback: Optional[Callable[[Dict[str, Any]], None]] = None
    callback_period: int = 10        # iterations between callback calls
    log: bool = False
    log_period: int = 10

    def validate(self) -> None:
        """Raise InvalidConfigurationError for out-of-range values."""
        if self.iterations < 0:
            raise InvalidConfigurationError(f"iterations must be >= 0, got {self.iterations}")
        if self.error_thresh < 0:
            raise InvalidConfigurationError(f"error_thresh must be >= 0, got {self.error_thresh}")
        if self.learning_rate <= 0:
            raise InvalidConfigurationError(f"learning_rate must be > 0, got {self.learning_rate}")
        if not 0 <= self.momentum < 1:
            raise InvalidConfigurationError(f"momentum must be in [0, 1), got {self.momentum}")
        if self.timeout <= 0:
            raise InvalidConfigurationError(f"timeout must be > 0, got {self.timeout}")
        if self.callback_period < 1 or self.log_period < 1:
            raise InvalidConfigurationError("callback_period and log_period must be >= 1")

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly dict; the callback is not serialized."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'callback'}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainingOptions':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class Trainer:
    """
    Trains a NeuralNetwork with full-batch gradient descent and momentum.
    """

    def __init__(self, network: 'NeuralNetwork', options: Optional[TrainingOptions] = None):
        self.network = network
        self.options = options or TrainingOptions()
        self._velocities: List[np.ndarray] = []
        self._bias_velocities: List[np.ndarray] = []

    def train(self, X: np.ndarray, Y: np.ndarray) -> Dict[str, Any]:
        """
        Train the network on inputs X and targets Y.

        Returns:
            {'error': final mean squared error, 'iterations': iterations run}

        Raises:
            TrainingFailure: if the error becomes NaN or infinite
        """
        options = self.options
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)

        self._velocities = [np.zeros_like(W) for W in self.network.weights]
        self._bias_velocities = [np.zeros_like(b) for b in self.network.biases]

        start = time.monotonic()
        error = self.network.error(X, Y)
        iteration = 0

        while iteration < options.iterations and error > options.error_thresh:
            iteration += 1
            weight_grads, bias_grads = self.network.backward(X, Y)
            self._update_with_momentum(weight_grads, bias_grads, options.learning_rate)

            error = self.network.error(X, Y)
            if not math.isfinite(error):
                raise TrainingFailure(
                    f"Training diverged at iteration {iteration}",
                    context={'iteration': iteration, 'error': error},
                )

            if options.callback is not None and iteration % options.callback_period == 0:
                options.callback({'iterations': iteration, 'error': error})
            if options.log and iteration % options.log_period == 0:
                logger.debug("iterations: {}, training error: {:.6f}", iteration, error)

            if time.monotonic() - start > options.timeout:
                break

        self.network.trained = True
        return {'error': float(error), 'iterations': iteration}

    def _update_with_momentum(
        self,
        weight_grads: List[np.ndarray],
        bias_grads: List[np.ndarray],
        lr: float
    ):
        """SGD with momentum update."""
        mu = self.options.momentum

        for i in range(len(self.network.weights)):
            self._velocities[i] = mu * self._velocities[i] - lr * weight_grads[i]
            self.network.weights[i] += self._velocities[i]

            self._bias_velocities[i] = mu * self._bias_velocities[i] - lr * bias_grads[i]
            self.network.biases[i] += self._bias_velocities[i]

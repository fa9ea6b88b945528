"""
Feed-forward network trained and evolved by the engine.

A network is fully described by its options (hidden layer sizes, activation,
binary threshold, leaky ReLU slope), its input/output sizes and its weights.
to_dict()/from_dict() round-trip all of it, which is how individuals travel
to worker processes and into checkpoints.

Weights for layer i have shape (neurons_i, neurons_{i-1}); row n holds the
incoming weights of neuron n.
"""

from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING
import numpy as np

from .activations import get_activation, sigmoid
from .numbers import RandomSource
from .training import Trainer, TrainingOptions

if TYPE_CHECKING:
    from ..evolution.genome import Genome


class NeuralNetwork:
    """
    A small fully-connected network.

    Hidden layers use the configured activation; the output layer is a
    sigmoid so outputs stay in [0, 1] like the encoded training targets.
    The error reported by training is the mean squared error.
    """

    def __init__(
        self,
        hidden_layers: List[int],
        activation: str = 'sigmoid',
        binary_thresh: float = 0.5,
        leaky_relu_alpha: float = 0.01,
        input_size: int = 1,
        output_size: int = 1,
        rng: Optional[RandomSource] = None,
    ):
        if not hidden_layers or any(int(n) < 1 for n in hidden_layers):
            raise ValueError(f"hidden_layers must be non-empty positive sizes, got {hidden_layers}")
        if input_size < 1 or output_size < 1:
            raise ValueError("input_size and output_size must be >= 1")

        self.hidden_layers = [int(n) for n in hidden_layers]
        self.activation = activation
        self.binary_thresh = binary_thresh
        self.leaky_relu_alpha = leaky_relu_alpha
        self.input_size = int(input_size)
        self.output_size = int(output_size)
        self.rng = rng or RandomSource()

        self.activation_fn = get_activation(activation, leaky_relu_alpha)
        self.weights: List[np.ndarray] = []
        self.biases: List[np.ndarray] = []
        self.train_options: Dict[str, Any] = {}
        self.trained = False

    @classmethod
    def from_genome(
        cls,
        genome: 'Genome',
        input_size: int,
        output_size: int,
        rng: Optional[RandomSource] = None,
    ) -> 'NeuralNetwork':
        """Build an (uninitialized) network from a genome and dataset sizes."""
        return cls(
            hidden_layers=list(genome.hidden_layers),
            activation=genome.activation,
            binary_thresh=genome.binary_thresh,
            leaky_relu_alpha=genome.leaky_relu_alpha,
            input_size=input_size,
            output_size=output_size,
            rng=rng,
        )

    @property
    def sizes(self) -> List[int]:
        """Neuron count of every layer, input and output included."""
        return [self.input_size] + self.hidden_layers + [self.output_size]

    @property
    def options(self) -> Dict[str, Any]:
        return {
            'hidden_layers': list(self.hidden_layers),
            'activation': self.activation,
            'binary_thresh': self.binary_thresh,
            'leaky_relu_alpha': self.leaky_relu_alpha,
        }

    def initialize(self) -> 'NeuralNetwork':
        """Initialize weights using He/Xavier initialization and zero biases."""
        self.weights = []
        self.biases = []
        sizes = self.sizes

        for i in range(len(sizes) - 1):
            fan_in, fan_out = sizes[i], sizes[i + 1]

            # He initialization for ReLU-like, Xavier for others
            if self.activation_fn.family == 'rectified':
                std = np.sqrt(2.0 / fan_in)
            else:
                std = np.sqrt(2.0 / (fan_in + fan_out))

            self.weights.append(self.rng.normal((fan_out, fan_in), std))
            self.biases.append(np.zeros(fan_out))

        self.trained = False
        return self

    def _ensure_initialized(self):
        if not self.weights:
            self.initialize()

    def forward(self, X: np.ndarray, return_intermediates: bool = False) -> Any:
        """
        Forward pass through the network.

        Args:
            X: Input array of shape (n_samples, input_size)
            return_intermediates: If True, also return pre-activations and
                activations of every layer

        Returns:
            Output of shape (n_samples, output_size), optionally with intermediates
        """
        self._ensure_initialized()
        intermediates = {'pre_activations': [], 'activations': [X]}

        current = X
        last = len(self.weights) - 1
        for i, (W, b) in enumerate(zip(self.weights, self.biases)):
            z = current @ W.T + b
            intermediates['pre_activations'].append(z)
            if i < last:
                current = self.activation_fn(z)
            else:
                current = sigmoid(z)
            intermediates['activations'].append(current)

        if return_intermediates:
            return current, intermediates
        return current

    def backward(self, X: np.ndarray, Y: np.ndarray) -> Tuple[List[np.ndarray], List[np.ndarray]]:
        """
        Backward pass for the mean squared error.

        Returns:
            Tuple of (weight_gradients, bias_gradients)
        """
        n_samples = X.shape[0]
        output, intermediates = self.forward(X, return_intermediates=True)

        weight_grads = [np.zeros_like(W) for W in self.weights]
        bias_grads = [np.zeros_like(b) for b in self.biases]

        # Output layer: sigmoid derivative expressed through its output
        delta = (output - Y) * output * (1 - output)

        for i in range(len(self.weights) - 1, -1, -1):
            prev_activation = intermediates['activations'][i]
            weight_grads[i] = (delta.T @ prev_activation) / n_samples
            bias_grads[i] = np.mean(delta, axis=0)

            if i > 0:
                delta = (delta @ self.weights[i]) * self.activation_fn.grad(
                    intermediates['pre_activations'][i - 1]
                )

        return weight_grads, bias_grads

    def error(self, X: np.ndarray, Y: np.ndarray) -> float:
        """Mean squared error over all samples and outputs."""
        output = self.forward(X)
        return float(np.mean((output - Y) ** 2))

    def run(self, input) -> np.ndarray:
        """Run inference on a single input vector."""
        x = np.asarray(input, dtype=float).reshape(1, -1)
        if x.shape[1] != self.input_size:
            raise ValueError(f"Expected input of size {self.input_size}, got {x.shape[1]}")
        return self.forward(x)[0]

    def classify(self, input) -> np.ndarray:
        """Binary outputs using the network's binary threshold."""
        return (self.run(input) > self.binary_thresh).astype(int)

    def accuracy(self, data) -> float:
        """Fraction of samples whose thresholded outputs all match the targets."""
        from ..datasets.data import to_arrays

        X, Y = to_arrays(data)
        predictions = (self.forward(X) > self.binary_thresh).astype(int)
        targets = (Y > self.binary_thresh).astype(int)
        return float(np.mean(np.all(predictions == targets, axis=1)))

    def train(self, data, options: Optional[TrainingOptions] = None) -> Dict[str, Any]:
        """
        Train on a dataset (Dataset, list of {'input', 'output'} pairs or an
        (X, Y) tuple of arrays).

        Returns:
            {'error': ..., 'iterations': ...}
        """
        from ..datasets.data import to_arrays

        options = options or TrainingOptions()
        X, Y = to_arrays(data)
        if X.shape[1] != self.input_size or Y.shape[1] != self.output_size:
            raise ValueError(
                f"Data sizes ({X.shape[1]}, {Y.shape[1]}) do not match network "
                f"({self.input_size}, {self.output_size})"
            )
        self._ensure_initialized()
        self.train_options = {
            **options.to_dict(),
            'activation': self.activation,
            'binary_thresh': self.binary_thresh,
            'leaky_relu_alpha': self.leaky_relu_alpha,
        }
        return Trainer(self, options).train(X, Y)

    def to_dict(self) -> Dict[str, Any]:
        """Full, lossless JSON-serializable state."""
        self._ensure_initialized()
        return {
            'options': self.options,
            'input_size': self.input_size,
            'output_size': self.output_size,
            'weights': [W.tolist() for W in self.weights],
            'biases': [b.tolist() for b in self.biases],
            'train_options': dict(self.train_options),
            'trained': self.trained,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], rng: Optional[RandomSource] = None) -> 'NeuralNetwork':
        """Restore a network produced by to_dict()."""
        options = data['options']
        network = cls(
            hidden_layers=options['hidden_layers'],
            activation=options['activation'],
            binary_thresh=options['binary_thresh'],
            leaky_relu_alpha=options['leaky_relu_alpha'],
            input_size=data['input_size'],
            output_size=data['output_size'],
            rng=rng,
        )
        network.weights = [np.array(W, dtype=float) for W in data['weights']]
        network.biases = [np.array(b, dtype=float) for b in data['biases']]
        network.train_options = dict(data.get('train_options', {}))
        network.trained = data.get('trained', False)
        return network

    def __repr__(self) -> str:
        layers = '-'.join(str(n) for n in self.hidden_layers)
        return f"NeuralNetwork({self.activation}[{layers}], {self.input_size}->{self.output_size})"

"""
Activation functions available to evolved networks.

The set is fixed to the four kinds a genome can carry. Leaky ReLU takes its
negative slope from the genome (leaky_relu_alpha).
"""

from functools import partial
from typing import Callable, Dict, List
import numpy as np


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Sigmoid - smooth, bounded (0, 1)."""
    # Clip to avoid overflow
    x = np.clip(x, -500, 500)
    return 1 / (1 + np.exp(-x))


def sigmoid_derivative(x: np.ndarray) -> np.ndarray:
    s = sigmoid(x)
    return s * (1 - s)


def relu(x: np.ndarray) -> np.ndarray:
    """Rectified Linear Unit."""
    return np.maximum(0, x)


def relu_derivative(x: np.ndarray) -> np.ndarray:
    return (x > 0).astype(float)


def leaky_relu(x: np.ndarray, alpha: float = 0.01) -> np.ndarray:
    """Leaky ReLU - small gradient for negative inputs."""
    return np.where(x > 0, x, alpha * x)


def leaky_relu_derivative(x: np.ndarray, alpha: float = 0.01) -> np.ndarray:
    return np.where(x > 0, 1.0, alpha)


def tanh(x: np.ndarray) -> np.ndarray:
    """Hyperbolic tangent - smooth, bounded (-1, 1)."""
    return np.tanh(x)


def tanh_derivative(x: np.ndarray) -> np.ndarray:
    return 1 - np.tanh(x) ** 2


class Activation:
    """Wrapper for an activation function with its derivative."""

    def __init__(
        self,
        name: str,
        func: Callable,
        derivative: Callable,
        family: str,
    ):
        self.name = name
        self.func = func
        self.derivative = derivative
        self.family = family

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.func(x)

    def grad(self, x: np.ndarray) -> np.ndarray:
        return self.derivative(x)

    def __repr__(self):
        return f"Activation({self.name}, family={self.family})"


# Order matters: mutation lists the incumbent first, then the rest in this order
ACTIVATION_NAMES: List[str] = ['sigmoid', 'relu', 'leaky-relu', 'tanh']


def get_activation(name: str, leaky_relu_alpha: float = 0.01) -> Activation:
    """Get an activation function by name."""
    if name == 'sigmoid':
        return Activation(name, sigmoid, sigmoid_derivative, 'smooth')
    if name == 'relu':
        return Activation(name, relu, relu_derivative, 'rectified')
    if name == 'leaky-relu':
        return Activation(
            name,
            partial(leaky_relu, alpha=leaky_relu_alpha),
            partial(leaky_relu_derivative, alpha=leaky_relu_alpha),
            'rectified',
        )
    if name == 'tanh':
        return Activation(name, tanh, tanh_derivative, 'smooth')
    available = ', '.join(ACTIVATION_NAMES)
    raise ValueError(f"Unknown activation '{name}'. Available: {available}")


def list_activations() -> Dict[str, str]:
    """Map each activation name to its family."""
    return {name: get_activation(name).family for name in ACTIVATION_NAMES}

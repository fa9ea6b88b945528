"""Core building blocks: randomness, sequence operations and the trainable network."""

from .numbers import RandomSource, encode, decode, round_to
from .sequences import shuffle, create_distribution, crossover
from .activations import ACTIVATION_NAMES, get_activation
from .network import NeuralNetwork
from .training import Trainer, TrainingOptions

__all__ = [
    'RandomSource',
    'encode',
    'decode',
    'round_to',
    'shuffle',
    'create_distribution',
    'crossover',
    'ACTIVATION_NAMES',
    'get_activation',
    'NeuralNetwork',
    'Trainer',
    'TrainingOptions',
]

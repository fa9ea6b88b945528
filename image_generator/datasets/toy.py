"""
Toy datasets for evolving image generators.

These are small enough to train on CPU in seconds:
1. inverter: the two-sample 0 -> 1, 1 -> 0 problem
2. xor: classic two-input XOR
3. gradients / stripes: tiny grayscale images indexed by a single input
"""

from typing import Any, Dict, Optional
import numpy as np

from .data import Dataset


def inverter() -> Dataset:
    """
    Two samples mapping 0 -> 1 and 1 -> 0.

    Solvable by any network with a single hidden neuron.
    """
    return Dataset.from_pairs([
        {'input': [0], 'output': [1]},
        {'input': [1], 'output': [0]},
    ])


def xor() -> Dataset:
    """Classic XOR - requires at least one hidden layer."""
    return Dataset.from_pairs([
        {'input': [0, 0], 'output': [0]},
        {'input': [0, 1], 'output': [1]},
        {'input': [1, 0], 'output': [1]},
        {'input': [1, 1], 'output': [0]},
    ])


def gradients(
    n_images: int = 4,
    width: int = 4,
    height: int = 4,
) -> Dataset:
    """
    Grayscale gradient images whose direction rotates with the index.

    Pixel values are bytes (0-255), encoded into [0, 1].
    """
    xs = np.linspace(0, 1, width)
    ys = np.linspace(0, 1, height)
    xx, yy = np.meshgrid(xs, ys)

    images = []
    for i in range(n_images):
        angle = np.pi * i / max(n_images, 1)
        field = np.cos(angle) * xx + np.sin(angle) * yy
        field = (field - field.min()) / (np.ptp(field) or 1.0)
        images.append(np.round(field * 255))

    return Dataset.from_outputs(images, min_value=0, max_value=255, location='toy:gradients')


def stripes(
    n_images: int = 3,
    width: int = 4,
    height: int = 4,
    seed: Optional[int] = None,
) -> Dataset:
    """
    Binary stripe images with a per-index stripe period.

    Args:
        n_images: Number of images (one per index)
        width, height: Image size in pixels
        seed: Random seed for the stripe phase
    """
    rng = np.random.default_rng(seed)
    images = []
    for i in range(n_images):
        period = i + 2
        phase = int(rng.integers(0, period))
        row = ((np.arange(width) + phase) // max(period // 2, 1)) % 2
        images.append(np.tile(row * 255, (height, 1)))

    return Dataset.from_outputs(images, min_value=0, max_value=255, location='toy:stripes')


DATASETS: Dict[str, Dict[str, Any]] = {
    'inverter': {
        'function': inverter,
        'name': 'Inverter',
        'description': 'Two samples, 0 -> 1 and 1 -> 0',
        'default_params': {},
    },
    'xor': {
        'function': xor,
        'name': 'XOR',
        'description': 'Two-input exclusive or',
        'default_params': {},
    },
    'gradients': {
        'function': gradients,
        'name': 'Gradients',
        'description': 'Grayscale gradient images indexed by rotation',
        'default_params': {'n_images': 4, 'width': 4, 'height': 4},
    },
    'stripes': {
        'function': stripes,
        'name': 'Stripes',
        'description': 'Binary stripe images with varying period',
        'default_params': {'n_images': 3, 'width': 4, 'height': 4, 'seed': None},
    },
}


def get_dataset(name: str, **kwargs) -> Dataset:
    """
    Get a dataset by name.

    Args:
        name: Dataset name
        **kwargs: Override default parameters
    """
    if name not in DATASETS:
        available = ', '.join(DATASETS.keys())
        raise ValueError(f"Unknown dataset '{name}'. Available: {available}")

    dataset_info = DATASETS[name]
    params = dataset_info['default_params'].copy()
    params.update(kwargs)

    return dataset_info['function'](**params)


def list_datasets() -> Dict[str, Dict]:
    """List all available datasets with their metadata."""
    return {
        name: {k: v for k, v in info.items() if k != 'function'}
        for name, info in DATASETS.items()
    }

"""
image-generator: evolve small neural networks that reproduce images.

Subpackages:
- core: random source, sequence operations and the trainable network
- datasets: the Dataset container and toy datasets
- evolution: genomes, genetic operators and the generation loop
- visualization: matplotlib plots of runs and reproduced images
"""

from .exceptions import (
    ImageGeneratorError,
    InvalidDatasetError,
    InvalidConfigurationError,
    TrainingFailure,
    EmptyPopulationError,
)

__version__ = '1.0.0'

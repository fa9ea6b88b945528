"""
Exception hierarchy for image-generator.

Dataset and configuration problems are raised before any generation runs.
Training failures are local to one individual and are caught by the engine;
an empty population is reported on the result instead of being raised.
"""

from typing import Any, Dict, Optional


class ImageGeneratorError(Exception):
    """Base class for all image-generator errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class InvalidDatasetError(ImageGeneratorError, ValueError):
    """Raised for empty, ragged or out-of-range training data."""


class InvalidConfigurationError(ImageGeneratorError, ValueError):
    """Raised when an evolution or training option is out of range."""


class TrainingFailure(ImageGeneratorError):
    """Raised when training a single network fails or diverges."""


class EmptyPopulationError(ImageGeneratorError):
    """No individual survived a generation."""


__all__ = [
    'ImageGeneratorError',
    'InvalidDatasetError',
    'InvalidConfigurationError',
    'TrainingFailure',
    'EmptyPopulationError',
]

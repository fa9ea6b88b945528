"""Training data: the Dataset container and toy datasets."""

from .data import Dataset, Sample, as_dataset, to_arrays
from .toy import (
    inverter,
    xor,
    gradients,
    stripes,
    DATASETS,
    get_dataset,
    list_datasets,
)

__all__ = [
    'Dataset',
    'Sample',
    'as_dataset',
    'to_arrays',
    'inverter',
    'xor',
    'gradients',
    'stripes',
    'DATASETS',
    'get_dataset',
    'list_datasets',
]

"""
Sequence operations used by the genetic operators.

- shuffle: in-place Fisher-Yates
- create_distribution: expand items into a list weighted by frequency
- crossover: in-place multi-pivot tail swapping between two sequences
"""

import math
from typing import Any, Iterable, List, MutableSequence, Optional, Sequence, Tuple, Union
import numpy as np

from .numbers import RandomSource


def shuffle(sequence: MutableSequence, rng: Optional[RandomSource] = None) -> MutableSequence:
    """
    Shuffle a sequence in place (Fisher-Yates) and return it.

    Args:
        sequence: List or 1-D array to permute
        rng: Random source (a fresh unseeded one if omitted)

    Returns:
        The same sequence object, permuted
    """
    rng = rng or RandomSource()
    for i in range(len(sequence) - 1, 0, -1):
        j = rng.rand_int(max=i, inclusive=True)
        sequence[i], sequence[j] = sequence[j], sequence[i]
    return sequence


def create_distribution(
    items: Sequence[Any],
    weights: Sequence[float],
    size: int,
) -> List[Any]:
    """
    Expand items into a list whose frequencies follow the weights.

    Item i is repeated ceil(size * weights[i] / sum(weights)) times, in input
    order, so the result can be slightly longer than `size`.

    Example:
        create_distribution(['one', 'two', 'three'], [0.5, 0.25, 0.25], 10)
        -> 5 x 'one', 3 x 'two', 3 x 'three'
    """
    if len(items) != len(weights):
        raise ValueError(
            f"items ({len(items)}) and weights ({len(weights)}) must have the same length"
        )
    total = sum(weights)
    if total <= 0:
        raise ValueError("weights must have a positive sum")

    quant = size / total
    distribution = []
    for item, weight in zip(items, weights):
        distribution.extend([item] * max(0, math.ceil(quant * weight)))
    return distribution


def crossover(
    seq_a: MutableSequence,
    seq_b: MutableSequence,
    pivots: Union[int, Iterable[int]],
) -> Tuple[MutableSequence, MutableSequence]:
    """
    Swap the tails of two sequences in place at one or more pivots.

    Pivots are applied in ascending order. Each one swaps the elements from
    the pivot up to the end of the shorter sequence, so consecutive pivots
    produce alternating bands:

        a=[1, 2, 3, 4, 5], b=[6, 7, 8, 9, 0], pivots=[1, 3]
        -> a=[1, 7, 8, 4, 5], b=[6, 2, 3, 9, 0]

    A pivot outside [0, min(len(a), len(b))] is skipped. Elements past the
    shorter length are never touched. numpy arrays (including 2-D views,
    where rows are swapped) are modified through the view.

    Returns:
        (seq_a, seq_b), the same objects that were passed in
    """
    if isinstance(pivots, (int, np.integer)):
        pivots = [pivots]
    length = min(len(seq_a), len(seq_b))

    for pivot in sorted(int(p) for p in pivots):
        if pivot < 0 or pivot > length:
            continue
        tail = seq_a[pivot:length]
        if isinstance(tail, np.ndarray):
            tail = tail.copy()
        seq_a[pivot:length] = seq_b[pivot:length]
        seq_b[pivot:length] = tail

    return seq_a, seq_b

"""Train/test partitioning of a dataset.

Both partitioners work on positions in the dataset rather than on sample
values, so duplicate samples are never counted on both sides of a split.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence

from .dataset import Sample
from .errors import InvalidFoldCount, InvalidRatio


@dataclass(frozen=True)
class Split:
    """A disjoint train/test partition of a dataset.

    Attributes:
        train_indices: Positions of the training samples in the source dataset.
        test_indices: Positions of the test samples in the source dataset.
        train: Training samples, in the order of ``train_indices``.
        test: Test samples, in the order of ``test_indices``.
    """

    train_indices: tuple[int, ...]
    test_indices: tuple[int, ...]
    train: list[Sample] = field(default_factory=list, repr=False, compare=False)
    test: list[Sample] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_indices(
        cls,
        dataset: Sequence[Sample],
        train_indices: Sequence[int],
        test_indices: Sequence[int],
    ) -> "Split":
        """Materialize a split from index lists over ``dataset``."""
        return cls(
            train_indices=tuple(train_indices),
            test_indices=tuple(test_indices),
            train=[dataset[i] for i in train_indices],
            test=[dataset[i] for i in test_indices],
        )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def split(
    dataset: Sequence[Sample],
    ratio: float,
    *,
    shuffle: bool = False,
    seed: Optional[int] = None,
) -> Split:
    """Split a dataset into a training and a test set.

    The first ``round(ratio * len(dataset))`` positions go to the training
    set and the rest to the test set. Without ``shuffle`` the cut is ordinal;
    with it, positions are permuted by a ``random.Random(seed)`` first and
    each side is then restored to dataset order.

    Args:
        dataset: Samples to split.
        ratio: Fraction of samples used for training, strictly between 0 and 1.
        shuffle: Randomize which samples land in each side.
        seed: Seed for the shuffle.

    Returns:
        The resulting :class:`Split`.

    Raises:
        InvalidRatio: If ``ratio`` is not in (0, 1).
    """
    if not 0 < ratio < 1:
        raise InvalidRatio(ratio)

    indices = list(range(len(dataset)))
    if shuffle:
        random.Random(seed).shuffle(indices)

    n_train = _round_half_up(ratio * len(dataset))
    train_indices = sorted(indices[:n_train])
    test_indices = sorted(indices[n_train:])
    return Split.from_indices(dataset, train_indices, test_indices)


def fold_bounds(n: int, k: int) -> list[tuple[int, int]]:
    """Return ``(start, stop)`` for ``k`` contiguous groups covering ``range(n)``.

    The first ``n % k`` groups hold one extra item, so group sizes differ by
    at most one.
    """
    base, extra = divmod(n, k)
    bounds = []
    start = 0
    for i in range(k):
        stop = start + base + (1 if i < extra else 0)
        bounds.append((start, stop))
        start = stop
    return bounds


def k_fold(dataset: Sequence[Sample], k: int) -> Iterator[Split]:
    """Partition a dataset into ``k`` folds for cross-validation.

    Validation happens immediately; the splits themselves are produced
    lazily, one per fold. Fold ``i`` tests on contiguous group ``i`` and
    trains on every other group in dataset order.

    Args:
        dataset: Samples to partition.
        k: Number of folds.

    Returns:
        Iterator of ``k`` :class:`Split` objects.

    Raises:
        InvalidFoldCount: If ``k < 2`` or ``k > len(dataset)``.
    """
    n = len(dataset)
    if k < 2 or k > n:
        raise InvalidFoldCount(k, n)
    return _iter_folds(dataset, fold_bounds(n, k))


def _iter_folds(dataset: Sequence[Sample], bounds: list[tuple[int, int]]) -> Iterator[Split]:
    n = len(dataset)
    for start, stop in bounds:
        test_indices = range(start, stop)
        train_indices = [i for i in range(n) if i < start or i >= stop]
        yield Split.from_indices(dataset, train_indices, list(test_indices))

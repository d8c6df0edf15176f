"""Exception types raised by text-learner.

Every error derives from :class:`LearnerError` and from the built-in
exception it specializes, so callers can catch either the library base
class or the familiar ``ValueError`` / ``RuntimeError`` / ``OSError``.
"""

from __future__ import annotations

from pathlib import Path


class LearnerError(Exception):
    """Base class for all text-learner errors."""


class InvalidRatio(LearnerError, ValueError):
    """Raised when a train/test split ratio is outside the open interval (0, 1)."""

    def __init__(self, ratio: float) -> None:
        self.ratio = ratio
        super().__init__(f"Split ratio must be in (0, 1), got {ratio!r}")


class InvalidFoldCount(LearnerError, ValueError):
    """Raised when k-fold partitioning is asked for an impossible fold count."""

    def __init__(self, k: int, dataset_size: int) -> None:
        self.k = k
        self.dataset_size = dataset_size
        super().__init__(
            f"Fold count must be between 2 and the dataset size ({dataset_size}), got {k!r}"
        )


class DegenerateFold(LearnerError, ValueError):
    """Raised when a cross-validation fold has an empty train or test subset."""

    def __init__(self, fold: int, train_size: int, test_size: int) -> None:
        self.fold = fold
        self.train_size = train_size
        self.test_size = test_size
        super().__init__(
            f"Fold {fold} is degenerate: {train_size} training samples, "
            f"{test_size} test samples"
        )


class IOFailure(LearnerError, OSError):
    """Raised when reading or writing a persisted file fails."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"I/O failure on {self.path}: {reason}")


class DeserializationFailure(LearnerError, ValueError):
    """Raised when persisted classifier data cannot be reconstructed."""


class NoStatsAvailable(LearnerError, RuntimeError):
    """Raised when statistics are requested before any evaluation has run."""

    def __init__(self) -> None:
        super().__init__(
            "No statistics available. Call eval() or cross_validate() first."
        )


class MissingClassifier(LearnerError, ValueError):
    """Raised when a saved learner state has no serialized classifier."""

    def __init__(self) -> None:
        super().__init__("Saved learner state is missing the 'classifier' field")

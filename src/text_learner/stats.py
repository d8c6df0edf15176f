"""Confusion-matrix bookkeeping and precision/recall statistics.

Every observation is a ``(predicted, actual)`` label pair. The accumulator
keeps a full confusion matrix per scope (the whole run, and each fold) and
derives one-vs-rest counts for every category from it:

- TP for category ``c``: actual ``c`` predicted ``c``
- FP: predicted ``c`` but actually something else
- FN: actually ``c`` but predicted something else
- TN: neither actual nor predicted ``c``

so each observation lands in exactly one of the four cells for every
category. Pooled ("overall") counts are the one-vs-rest counts of the
positive category: ``positive_label`` when given, otherwise the first
tracked category. Either way ``tp + tn + fp + fn`` equals the number of
observations; the other categories are reported in ``per_category``.

Two aggregation modes are offered:

- **micro** (:meth:`StatsAccumulator.calculate_stats`): ratios from the
  pooled counts of every observation.
- **macro** (:meth:`StatsAccumulator.calculate_macro_average_stats`): each
  fold's ratios are computed on their own and then averaged.

Any ratio whose denominator is zero is reported as ``0.0``.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Optional

RATIO_NAMES: tuple[str, ...] = ("precision", "recall", "accuracy", "specificity", "f1")


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


# ---------------------------------------------------------------------------
# Confusion counts
# ---------------------------------------------------------------------------

@dataclass
class ConfusionCounts:
    """True/false positive/negative tallies for one scope.

    Precision (PPV): TP / (TP + FP)
    Recall (TPR): TP / (TP + FN)
    Accuracy: (TP + TN) / total
    Specificity (TNR): TN / (FP + TN)
    F1: 2 * precision * recall / (precision + recall)
    """

    tp: int = 0
    tn: int = 0
    fp: int = 0
    fn: int = 0

    @property
    def total(self) -> int:
        return self.tp + self.tn + self.fp + self.fn

    @property
    def precision(self) -> float:
        return _ratio(self.tp, self.tp + self.fp)

    @property
    def recall(self) -> float:
        return _ratio(self.tp, self.tp + self.fn)

    @property
    def accuracy(self) -> float:
        return _ratio(self.tp + self.tn, self.total)

    @property
    def specificity(self) -> float:
        return _ratio(self.tn, self.fp + self.tn)

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return _ratio(2 * p * r, p + r)

    def ratios(self) -> dict[str, float]:
        """All derived ratios keyed by name."""
        return {name: getattr(self, name) for name in RATIO_NAMES}

    def __add__(self, other: "ConfusionCounts") -> "ConfusionCounts":
        return ConfusionCounts(
            tp=self.tp + other.tp,
            tn=self.tn + other.tn,
            fp=self.fp + other.fp,
            fn=self.fn + other.fn,
        )

    def to_dict(self) -> dict:
        return {"tp": self.tp, "tn": self.tn, "fp": self.fp, "fn": self.fn}


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StatsReport:
    """Read-only statistics computed by a :class:`StatsAccumulator`.

    Attributes:
        averaging: ``"micro"`` or ``"macro"``.
        tp: Pooled true positives.
        tn: Pooled true negatives.
        fp: Pooled false positives.
        fn: Pooled false negatives.
        count: Number of samples classified.
        precision: Precision (micro: pooled, macro: mean of folds).
        recall: Recall.
        accuracy: Accuracy.
        specificity: Specificity.
        f1: F1 score.
        per_category: ``{category: {"tp", "tn", "fp", "fn", "precision", ...}}``.
        confusion: ``{actual: {predicted: count}}``.
        folds: Number of folds that contributed.
    """

    averaging: str
    tp: int
    tn: int
    fp: int
    fn: int
    count: int
    precision: float
    recall: float
    accuracy: float
    specificity: float
    f1: float
    per_category: dict[str, dict[str, float]] = field(default_factory=dict)
    confusion: dict[str, dict[str, int]] = field(default_factory=dict)
    folds: int = 1

    @property
    def total(self) -> int:
        """Sum of the pooled counts; equals ``count``."""
        return self.tp + self.tn + self.fp + self.fn

    def to_dict(self) -> dict:
        return {
            "averaging": self.averaging,
            "tp": self.tp,
            "tn": self.tn,
            "fp": self.fp,
            "fn": self.fn,
            "count": self.count,
            "precision": self.precision,
            "recall": self.recall,
            "accuracy": self.accuracy,
            "specificity": self.specificity,
            "f1": self.f1,
            "per_category": self.per_category,
            "confusion": self.confusion,
            "folds": self.folds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StatsReport":
        return cls(
            averaging=data["averaging"],
            tp=data["tp"],
            tn=data["tn"],
            fp=data["fp"],
            fn=data["fn"],
            count=data["count"],
            precision=data["precision"],
            recall=data["recall"],
            accuracy=data["accuracy"],
            specificity=data["specificity"],
            f1=data["f1"],
            per_category=data.get("per_category", {}),
            confusion=data.get("confusion", {}),
            folds=data.get("folds", 1),
        )

    def summary(self) -> str:
        """Human-readable summary of the report."""
        lines = [
            f"Averaging: {self.averaging} ({self.folds} fold(s), {self.count} samples)",
            f"Accuracy: {self.accuracy:.2%}",
            f"Precision: {self.precision:.4f}",
            f"Recall: {self.recall:.4f}",
            f"F1: {self.f1:.4f}",
            f"Specificity: {self.specificity:.4f}",
            "",
            f"{'Category':<20} {'Precision':>10} {'Recall':>10} {'F1':>10}",
            "-" * 52,
        ]
        for category, stats in self.per_category.items():
            lines.append(
                f"{category:<20} {stats['precision']:>10.4f} {stats['recall']:>10.4f} "
                f"{stats['f1']:>10.4f}"
            )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------

class _Tally:
    """Confusion matrix and sample count for a single scope."""

    def __init__(self) -> None:
        self.count = 0
        self.matrix: defaultdict[Hashable, Counter] = defaultdict(Counter)

    def add(self, predicted: Hashable, actual: Hashable) -> None:
        self.matrix[actual][predicted] += 1
        self.count += 1

    def counts_for(self, category: Hashable) -> ConfusionCounts:
        tp = self.matrix[category][category] if category in self.matrix else 0
        fn = sum(self.matrix[category].values()) - tp if category in self.matrix else 0
        fp = sum(
            row[category] for actual, row in self.matrix.items() if actual != category
        )
        return ConfusionCounts(tp=tp, tn=self.count - tp - fp - fn, fp=fp, fn=fn)

    def pooled(self, positive: Optional[Hashable]) -> ConfusionCounts:
        if positive is None:
            return ConfusionCounts()
        return self.counts_for(positive)


class StatsAccumulator:
    """Accumulate predictions and compute micro or macro averaged statistics.

    Example::

        acc = StatsAccumulator(positive_label="spam")
        acc.update("spam", "spam")
        acc.update("ham", "spam")
        report = acc.calculate_stats()
        print(report.recall)  # 0.5

    For cross-validation, call :meth:`new_fold` before each fold so that
    fold-local counts are kept for :meth:`calculate_macro_average_stats`.

    Args:
        categories: Known category labels. Labels first seen in
            :meth:`update` are added automatically.
        positive_label: Category scored as "positive" in the pooled counts.
            When omitted, the first tracked category is used.
    """

    def __init__(
        self,
        categories: Optional[Iterable[Hashable]] = None,
        positive_label: Optional[Hashable] = None,
    ) -> None:
        self._categories: list[Hashable] = list(dict.fromkeys(categories or ()))
        self.positive_label = positive_label
        if positive_label is not None and positive_label not in self._categories:
            self._categories.append(positive_label)
        self._overall = _Tally()
        self._folds: list[_Tally] = []
        self._report: Optional[StatsReport] = None

    @property
    def categories(self) -> list[Hashable]:
        """Tracked categories, declared ones first then in order of appearance."""
        return list(self._categories)

    @property
    def count(self) -> int:
        """Number of observations recorded."""
        return self._overall.count

    @property
    def num_folds(self) -> int:
        return len(self._folds)

    @property
    def positive_category(self) -> Optional[Hashable]:
        """Category behind the pooled counts: ``positive_label`` or the first tracked one."""
        if self.positive_label is not None:
            return self.positive_label
        return self._categories[0] if self._categories else None

    def new_fold(self) -> None:
        """Start a new fold bucket for subsequent updates."""
        self._folds.append(_Tally())

    def update(self, predicted: Hashable, actual: Hashable) -> None:
        """Record one prediction against its ground-truth label."""
        for label in (actual, predicted):
            if label not in self._categories:
                self._categories.append(label)
        if not self._folds:
            self.new_fold()
        self._overall.add(predicted, actual)
        self._folds[-1].add(predicted, actual)
        self._report = None

    def update_many(self, pairs: Iterable[tuple[Hashable, Hashable]]) -> None:
        """Record several ``(predicted, actual)`` pairs."""
        for predicted, actual in pairs:
            self.update(predicted, actual)

    def class_counts(self, category: Hashable) -> ConfusionCounts:
        """One-vs-rest counts for a single category over all observations."""
        return self._overall.counts_for(category)

    def overall_counts(self) -> ConfusionCounts:
        """Pooled counts over all observations."""
        return self._overall.pooled(self.positive_category)

    def confusion_matrix(self) -> dict[str, dict[str, int]]:
        """Full ``{actual: {predicted: count}}`` matrix over tracked categories."""
        return {
            actual: {
                predicted: self._overall.matrix[actual][predicted]
                if actual in self._overall.matrix
                else 0
                for predicted in self._categories
            }
            for actual in self._categories
        }

    def calculate_stats(self) -> StatsReport:
        """Compute micro-averaged statistics from the pooled counts."""
        pooled = self.overall_counts()
        per_category = {}
        for category in self._categories:
            counts = self._overall.counts_for(category)
            per_category[category] = {**counts.to_dict(), **counts.ratios()}

        self._report = self._build_report("micro", pooled, pooled.ratios(), per_category)
        return self._report

    def calculate_macro_average_stats(self, num_folds: int) -> StatsReport:
        """Average each fold's own ratios.

        Counts in the returned report are pooled totals; every ratio (overall
        and per category) is the arithmetic mean of the per-fold ratios.

        Args:
            num_folds: Expected number of folds.

        Raises:
            ValueError: If ``num_folds`` differs from the number of recorded folds.
        """
        if num_folds < 1 or num_folds != len(self._folds):
            raise ValueError(
                f"Expected {num_folds} folds but {len(self._folds)} were recorded"
            )

        fold_ratios = [
            fold.pooled(self.positive_category).ratios() for fold in self._folds
        ]
        ratios = {
            name: sum(r[name] for r in fold_ratios) / num_folds for name in RATIO_NAMES
        }

        per_category = {}
        for category in self._categories:
            counts = self._overall.counts_for(category)
            fold_counts = [fold.counts_for(category) for fold in self._folds]
            per_category[category] = {
                **counts.to_dict(),
                **{
                    name: sum(getattr(c, name) for c in fold_counts) / num_folds
                    for name in RATIO_NAMES
                },
            }

        self._report = self._build_report(
            "macro", self.overall_counts(), ratios, per_category
        )
        return self._report

    def full_stats(self) -> StatsReport:
        """Return the last calculated report, computing micro stats if needed."""
        if self._report is None:
            return self.calculate_stats()
        return self._report

    def _build_report(
        self,
        averaging: str,
        pooled: ConfusionCounts,
        ratios: dict[str, float],
        per_category: dict,
    ) -> StatsReport:
        return StatsReport(
            averaging=averaging,
            tp=pooled.tp,
            tn=pooled.tn,
            fp=pooled.fp,
            fn=pooled.fn,
            count=self._overall.count,
            per_category=per_category,
            confusion=self.confusion_matrix(),
            folds=max(1, len(self._folds)),
            **ratios,
        )

"""Single-split evaluation and k-fold cross-validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Hashable, Iterable, Optional, Sequence

from .classifier import Classifier
from .dataset import Sample, categories_of
from .errors import DegenerateFold
from .partition import Split, k_fold
from .stats import StatsAccumulator, StatsReport

logger = logging.getLogger(__name__)


def _score(
    classifier: Classifier,
    test_set: Sequence[Sample],
    accumulators: Iterable[StatsAccumulator],
    verbose_level: int = 0,
) -> None:
    """Classify every test sample and feed the result into each accumulator."""
    accumulators = list(accumulators)
    for sample in test_set:
        predicted = classifier.classify(sample.input)
        for acc in accumulators:
            acc.update(predicted, sample.output)
        if verbose_level >= 2 and predicted != sample.output:
            logger.info(
                "Misclassified %r: expected %s, got %s",
                _excerpt(sample.input), sample.output, predicted,
            )


def _excerpt(value: object, width: int = 60) -> str:
    text = str(value).replace("\n", " ")
    return text if len(text) <= width else text[:width] + "..."


def evaluate(
    classifier: Classifier,
    train_set: Sequence[Sample],
    test_set: Sequence[Sample],
    *,
    categories: Optional[Iterable[Hashable]] = None,
    positive_label: Optional[Hashable] = None,
    train: bool = True,
    verbose_level: int = 0,
) -> StatsReport:
    """Train on one set and score predictions on another.

    The classifier is trained in place with a single ``train_batch`` call;
    pass a fresh instance unless reuse is intended.

    Args:
        classifier: Model to train and test.
        train_set: Training samples.
        test_set: Samples to classify and score.
        categories: Known labels; defaults to those in both sets.
        positive_label: Category behind the pooled counts; the first category when omitted.
        train: Skip training when False (classifier already trained).
        verbose_level: 2 or more logs every misclassified sample.

    Returns:
        Micro-averaged :class:`StatsReport` over ``test_set``.
    """
    if categories is None:
        categories = categories_of([*train_set, *test_set])
    if train:
        classifier.train_batch(train_set)
    acc = StatsAccumulator(categories=categories, positive_label=positive_label)
    _score(classifier, test_set, [acc], verbose_level)
    return acc.calculate_stats()


@dataclass(frozen=True)
class CrossValidationResult:
    """Outcome of a cross-validation run.

    Attributes:
        macro_avg: Mean of the per-fold ratios.
        micro_avg: Ratios of the counts pooled over all folds.
        folds: Each fold's own report, in fold order.
    """

    macro_avg: StatsReport
    micro_avg: StatsReport
    folds: list[StatsReport] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "macro_avg": self.macro_avg.to_dict(),
            "micro_avg": self.micro_avg.to_dict(),
            "folds": [report.to_dict() for report in self.folds],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CrossValidationResult":
        return cls(
            macro_avg=StatsReport.from_dict(data["macro_avg"]),
            micro_avg=StatsReport.from_dict(data["micro_avg"]),
            folds=[StatsReport.from_dict(d) for d in data.get("folds", [])],
        )


def cross_validate(
    dataset: Sequence[Sample],
    classifier_factory: Callable[[], Classifier],
    num_folds: int = 5,
    *,
    verbose_level: int = 0,
    log: bool = False,
    categories: Optional[Iterable[Hashable]] = None,
    positive_label: Optional[Hashable] = None,
    on_fold: Optional[Callable[[int, Split], None]] = None,
) -> CrossValidationResult:
    """Run k-fold cross-validation.

    Folds run one after another. Each fold trains a new classifier from
    ``classifier_factory`` on its training subset and classifies its test
    subset. Every prediction is recorded twice: in a pooled accumulator
    (micro average) and in the current fold's bucket of a second
    accumulator (macro average).

    Args:
        dataset: Samples to partition.
        classifier_factory: Zero-argument callable returning a new classifier.
        num_folds: Number of folds.
        verbose_level: 1 logs per-fold stats, 2 also logs misclassifications.
        log: Log the train/test sizes of each fold.
        categories: Known labels; defaults to the labels present in ``dataset``.
        positive_label: Category behind the pooled counts; the first category when omitted.
        on_fold: Called with ``(fold_index, split)`` before each fold trains.

    Returns:
        :class:`CrossValidationResult` with macro and micro averages.

    Raises:
        InvalidFoldCount: If ``num_folds`` is not in ``[2, len(dataset)]``.
        DegenerateFold: If a fold has an empty train or test subset.
    """
    categories = list(categories) if categories is not None else categories_of(dataset)
    micro = StatsAccumulator(categories=categories, positive_label=positive_label)
    macro = StatsAccumulator(categories=categories, positive_label=positive_label)
    fold_reports: list[StatsReport] = []

    for fold_index, split in enumerate(k_fold(dataset, num_folds)):
        if not split.train or not split.test:
            raise DegenerateFold(fold_index, len(split.train), len(split.test))
        if on_fold is not None:
            on_fold(fold_index, split)
        if log:
            logger.info(
                "Training on %d samples, testing %d samples",
                len(split.train), len(split.test),
            )

        classifier = classifier_factory()
        classifier.train_batch(split.train)

        fold = StatsAccumulator(categories=categories, positive_label=positive_label)
        micro.new_fold()
        macro.new_fold()
        _score(classifier, split.test, [micro, macro, fold], verbose_level)
        fold_report = fold.calculate_stats()
        fold_reports.append(fold_report)

        if verbose_level >= 1:
            logger.info(
                "Fold %d/%d: accuracy=%.4f precision=%.4f recall=%.4f f1=%.4f",
                fold_index + 1, num_folds, fold_report.accuracy,
                fold_report.precision, fold_report.recall, fold_report.f1,
            )

    macro.calculate_macro_average_stats(num_folds)
    micro.calculate_stats()
    return CrossValidationResult(
        macro_avg=macro.full_stats(),
        micro_avg=micro.full_stats(),
        folds=fold_reports,
    )

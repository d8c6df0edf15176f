"""High-level experiment facade.

The :class:`Learner` owns a dataset, its train/test split and a classifier,
and exposes training, evaluation, cross-validation, classification, stats
reporting and persistence in one place.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from .classifier import Classifier, ClassifierBuilder
from .dataset import Sample, categories_of, default_dataset
from .errors import (
    DeserializationFailure,
    InvalidRatio,
    IOFailure,
    MissingClassifier,
    NoStatsAvailable,
)
from .evaluation import CrossValidationResult, cross_validate, evaluate
from .partition import Split, split
from .serialization import from_string, read_builder, to_string
from .stats import StatsReport

logger = logging.getLogger(__name__)

DEFAULT_CLASSIFIER_FILE = "classifier.json"


@dataclass
class LearnerConfig:
    """Configuration for a :class:`Learner`.

    Attributes:
        dataset: Labeled samples. ``None`` loads the bundled default dataset.
        train_split: Fraction of the dataset used for training, in (0, 1).
        classifier: Builder for classifier instances, or a registered name.
        categories: Known labels. ``None`` uses the labels in the dataset.
        positive_label: Category behind the pooled TP/TN/FP/FN counts;
            ``None`` uses the first category.
        shuffle: Shuffle before the train/test cut.
        seed: Seed for the shuffle.
    """

    dataset: Optional[Sequence[Sample]] = None
    train_split: float = 0.8
    classifier: ClassifierBuilder = field(default_factory=ClassifierBuilder)
    categories: Optional[Sequence[str]] = None
    positive_label: Optional[str] = None
    shuffle: bool = False
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0 < self.train_split < 1:
            raise InvalidRatio(self.train_split)
        if isinstance(self.classifier, str):
            self.classifier = ClassifierBuilder(self.classifier)


class Learner:
    """Train, evaluate, cross-validate and persist a text classifier.

    Example::

        learner = Learner(dataset=samples, train_split=0.8)
        learner.train()
        report = learner.eval()
        print(report.accuracy)

        result = learner.cross_validate(num_folds=5)
        print(result.macro_avg.f1, result.micro_avg.f1)

        learner.serialize_and_save_classifier("classifier.json")

    Args:
        config: Full configuration. Keyword overrides are applied on top of
            it (or on top of the defaults when ``config`` is omitted).
        **overrides: Any :class:`LearnerConfig` field.
    """

    def __init__(self, config: Optional[LearnerConfig] = None, **overrides: Any) -> None:
        if config is None:
            config = LearnerConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)
        self.config = config

        self.dataset: list[Sample] = (
            list(config.dataset) if config.dataset is not None else default_dataset()
        )
        self.train_split = config.train_split
        self.categories: list[str] = (
            list(config.categories)
            if config.categories is not None
            else categories_of(self.dataset)
        )
        self.positive_label = config.positive_label
        self.classifier_builder = config.classifier
        self.classifier: Classifier = self.classifier_builder()

        self.split: Split = split(
            self.dataset, self.train_split, shuffle=config.shuffle, seed=config.seed
        )
        self.macro_avg: Optional[StatsReport] = None
        self.micro_avg: Optional[StatsReport] = None
        self.last_eval: Optional[StatsReport] = None
        self._latest_stats: Optional[StatsReport] = None

        logger.debug(
            "Learner ready: %d samples (%d train / %d test), %d categories",
            len(self.dataset), len(self.train_set), len(self.test_set), len(self.categories),
        )

    @property
    def train_set(self) -> list[Sample]:
        return self.split.train

    @property
    def test_set(self) -> list[Sample]:
        return self.split.test

    # ------------------------------------------------------------------
    # Training and evaluation
    # ------------------------------------------------------------------

    def train(self, train_set: Optional[Sequence[Sample]] = None) -> None:
        """Train the held classifier on ``train_set`` (default: the held train split)."""
        samples = self.train_set if train_set is None else train_set
        logger.info("Training on %d samples", len(samples))
        self.classifier.train_batch(samples)

    def eval(self, log: bool = False, verbose_level: int = 0) -> StatsReport:
        """Train on the held train split and score the held test split.

        The report becomes the source for :meth:`get_stats`.
        """
        if log:
            logger.info(
                "Training on %d samples, testing %d samples",
                len(self.train_set), len(self.test_set),
            )
        report = evaluate(
            self.classifier,
            self.train_set,
            self.test_set,
            categories=self.categories,
            positive_label=self.positive_label,
            verbose_level=verbose_level,
        )
        self.last_eval = report
        self._latest_stats = report
        return report

    def cross_validate(
        self,
        num_folds: int = 5,
        verbose_level: int = 0,
        log: bool = False,
        on_fold: Optional[Callable[[int, Split], None]] = None,
    ) -> CrossValidationResult:
        """Run k-fold cross-validation over the whole dataset.

        Every fold trains its own classifier from :attr:`classifier_builder`;
        the held classifier and split are left untouched. The result is
        returned and also cached as :attr:`macro_avg` / :attr:`micro_avg`.
        """
        result = cross_validate(
            self.dataset,
            self.classifier_builder,
            num_folds,
            verbose_level=verbose_level,
            log=log,
            categories=self.categories,
            positive_label=self.positive_label,
            on_fold=on_fold,
        )
        self.macro_avg = result.macro_avg
        self.micro_avg = result.micro_avg
        self._latest_stats = result.micro_avg
        return result

    def classify(self, input: Any) -> str:
        return self.classifier.classify(input)

    def back_classify(self, category: str) -> Any:
        """Best-effort representative input for ``category``.

        Raises:
            NotImplementedError: If the classifier has no ``back_classify``.
        """
        back_classify = getattr(self.classifier, "back_classify", None)
        if back_classify is None:
            raise NotImplementedError(
                f"{type(self.classifier).__name__} does not support back_classify"
            )
        return back_classify(category)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_category_partition(self) -> dict[str, dict[str, int]]:
        """Per-category sample counts: ``{category: {"overall", "train", "test"}}``."""
        result = {cat: {"overall": 0, "train": 0, "test": 0} for cat in self.categories}

        def bucket(label: str) -> dict[str, int]:
            return result.setdefault(label, {"overall": 0, "train": 0, "test": 0})

        for sample in self.dataset:
            bucket(sample.output)["overall"] += 1
        for i in self.split.train_indices:
            bucket(self.dataset[i].output)["train"] += 1
        for i in self.split.test_indices:
            bucket(self.dataset[i].output)["test"] += 1
        return result

    def get_stats(self) -> dict:
        """Consolidated report from the latest cross-validation or evaluation.

        Raises:
            NoStatsAvailable: If neither :meth:`cross_validate` nor
                :meth:`eval` has run.
        """
        stats = self._latest_stats
        if stats is None:
            raise NoStatsAvailable()
        return {
            "tp": stats.tp,
            "tn": stats.tn,
            "fp": stats.fp,
            "fn": stats.fn,
            "confusion": stats.confusion,
            "precision": stats.precision,
            "accuracy": stats.accuracy,
            "recall": stats.recall,
            "f1": stats.f1,
            "specificity": stats.specificity,
            "total_count": stats.count,
            "train_count": len(self.train_set),
            "test_count": len(self.test_set),
            "category_partition": self.get_category_partition(),
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def serialize_classifier(self) -> str:
        return to_string(self.classifier, self.classifier_builder)

    def deserialize_classifier(self, serialized: str) -> Classifier:
        return from_string(serialized)

    def serialize_and_save_classifier(self, path: str | Path = DEFAULT_CLASSIFIER_FILE) -> str:
        """Serialize the held classifier and write it to ``path``.

        Returns:
            The serialized string that was written.

        Raises:
            IOFailure: If the file cannot be written.
        """
        data = self.serialize_classifier()
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(data, encoding="utf-8")
        except OSError as exc:
            raise IOFailure(path, exc.strerror or str(exc)) from exc
        logger.info("Saved classifier to %s", path)
        return data

    def load_and_deserialize_classifier(
        self,
        path: str | Path = DEFAULT_CLASSIFIER_FILE,
        attach: bool = False,
    ) -> Classifier:
        """Read a serialized classifier from ``path``.

        Args:
            path: File written by :meth:`serialize_and_save_classifier`.
            attach: Also make it the held classifier.

        Raises:
            IOFailure: If the file cannot be read.
            DeserializationFailure: If its content is malformed.
        """
        path = Path(path)
        try:
            data = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IOFailure(path, exc.strerror or str(exc)) from exc

        classifier = self.deserialize_classifier(data)
        if attach:
            self.classifier = classifier
            self.classifier_builder = read_builder(data)
        return classifier

    def to_json(self) -> dict:
        """Full learner state as a JSON-compatible dict."""
        data = {
            "classifier": self.serialize_classifier(),
            "classifier_builder": self.classifier_builder.to_dict(),
            "dataset": [sample.to_dict() for sample in self.dataset],
            "train_split": self.train_split,
            "categories": self.categories,
            "positive_label": self.positive_label,
            "train_indices": list(self.split.train_indices),
            "test_indices": list(self.split.test_indices),
            "train_set": [sample.to_dict() for sample in self.train_set],
            "test_set": [sample.to_dict() for sample in self.test_set],
        }
        if self.macro_avg is not None:
            data["macro_avg"] = self.macro_avg.to_dict()
        if self.micro_avg is not None:
            data["micro_avg"] = self.micro_avg.to_dict()
        if self.last_eval is not None:
            data["last_eval"] = self.last_eval.to_dict()
        return data

    @classmethod
    def from_json(cls, data: dict) -> "Learner":
        """Rebuild a learner from :meth:`to_json` output.

        Raises:
            MissingClassifier: If ``data`` has no ``"classifier"`` field.
            DeserializationFailure: If the classifier cannot be rebuilt or a
                saved split index is out of range.
        """
        if "classifier" not in data:
            raise MissingClassifier()

        builder = (
            ClassifierBuilder.from_dict(data["classifier_builder"])
            if "classifier_builder" in data
            else read_builder(data["classifier"])
        )
        dataset = data.get("dataset")
        learner = cls(
            dataset=[Sample.from_dict(d) for d in dataset] if dataset is not None else None,
            train_split=data.get("train_split", 0.8),
            classifier=builder,
            categories=data.get("categories"),
            positive_label=data.get("positive_label"),
        )

        if "train_indices" in data and "test_indices" in data:
            train_indices, test_indices = data["train_indices"], data["test_indices"]
            size = len(learner.dataset)
            for i in (*train_indices, *test_indices):
                if not isinstance(i, int) or not 0 <= i < size:
                    raise DeserializationFailure(
                        f"Split index {i!r} is out of range for a dataset of {size} samples"
                    )
            learner.split = Split.from_indices(learner.dataset, train_indices, test_indices)
        if "macro_avg" in data:
            learner.macro_avg = StatsReport.from_dict(data["macro_avg"])
        if "micro_avg" in data:
            learner.micro_avg = StatsReport.from_dict(data["micro_avg"])
        if "last_eval" in data:
            learner.last_eval = StatsReport.from_dict(data["last_eval"])
        learner._latest_stats = learner.micro_avg or learner.last_eval

        learner.classifier = learner.deserialize_classifier(data["classifier"])
        return learner

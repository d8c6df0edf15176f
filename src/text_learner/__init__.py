"""text-learner -- train, evaluate and cross-validate text classifiers."""

__version__ = "0.1.0"

from .classifier import (
    Classifier,
    ClassifierBuilder,
    MajorityClassifier,
    MultinomialNB,
    NaiveBayesTextClassifier,
    TfidfVectorizer,
    available_classifiers,
    get_classifier_class,
    register_classifier,
)
from .dataset import Sample, categories_of, default_dataset, load_dataset
from .errors import (
    DegenerateFold,
    DeserializationFailure,
    InvalidFoldCount,
    InvalidRatio,
    IOFailure,
    LearnerError,
    MissingClassifier,
    NoStatsAvailable,
)
from .evaluation import CrossValidationResult, cross_validate, evaluate
from .learner import Learner, LearnerConfig
from .partition import Split, k_fold, split
from .serialization import from_string, to_string
from .stats import ConfusionCounts, StatsAccumulator, StatsReport

__all__ = [
    # Core
    "Learner",
    "LearnerConfig",
    "Sample",
    # Partitioning
    "Split",
    "split",
    "k_fold",
    # Statistics
    "ConfusionCounts",
    "StatsAccumulator",
    "StatsReport",
    # Evaluation
    "evaluate",
    "cross_validate",
    "CrossValidationResult",
    # Classifiers
    "Classifier",
    "ClassifierBuilder",
    "NaiveBayesTextClassifier",
    "MajorityClassifier",
    "TfidfVectorizer",
    "MultinomialNB",
    "register_classifier",
    "get_classifier_class",
    "available_classifiers",
    # Data and persistence
    "load_dataset",
    "default_dataset",
    "categories_of",
    "to_string",
    "from_string",
    # Errors
    "LearnerError",
    "InvalidRatio",
    "InvalidFoldCount",
    "DegenerateFold",
    "IOFailure",
    "DeserializationFailure",
    "NoStatsAvailable",
    "MissingClassifier",
]

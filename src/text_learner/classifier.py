"""Classifier protocol, registry and the bundled text classifiers.

Any object with ``train_batch(samples)`` and ``classify(input)`` can be
evaluated by the harness. To be persisted it also needs ``to_dict()`` and a
``from_dict()`` classmethod, and must be registered under a name so that a
:class:`ClassifierBuilder` can rebuild it.

Bundled classifiers:

- ``naive_bayes``: TF-IDF features with n-grams fed to a multinomial
  Naive Bayes model with Laplace smoothing (pure Python).
- ``majority``: always predicts the most frequent training label. A
  baseline for spotting degenerate classifiers.
"""

from __future__ import annotations

import math
import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

from .dataset import Sample


@runtime_checkable
class Classifier(Protocol):
    """Capabilities the harness needs from a model."""

    def train_batch(self, samples: Sequence[Sample]) -> None:
        ...

    def classify(self, input: Any) -> str:
        ...


_REGISTRY: dict[str, type] = {}


def register_classifier(name: str) -> Callable[[type], type]:
    """Class decorator registering a classifier under ``name``."""

    def decorator(cls: type) -> type:
        _REGISTRY[name] = cls
        cls.registry_name = name
        return cls

    return decorator


def get_classifier_class(name: str) -> type:
    """Look up a registered classifier class.

    Raises:
        ValueError: If no classifier is registered under ``name``.
    """
    try:
        return _REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"Unknown classifier: {name}. Known: {sorted(_REGISTRY)}"
        ) from None


def available_classifiers() -> list[str]:
    return sorted(_REGISTRY)


@dataclass(frozen=True)
class ClassifierBuilder:
    """Serializable factory for fresh classifier instances.

    Args:
        name: Registry name of the classifier class.
        params: Keyword arguments passed to the class constructor.
    """

    name: str = "naive_bayes"
    params: dict = field(default_factory=dict)

    def __call__(self) -> Classifier:
        return get_classifier_class(self.name)(**self.params)

    def to_dict(self) -> dict:
        return {"name": self.name, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, data: dict) -> "ClassifierBuilder":
        return cls(name=data["name"], params=dict(data.get("params") or {}))


# ---------------------------------------------------------------------------
# TF-IDF Vectorizer
# ---------------------------------------------------------------------------

_WORD_RE = re.compile(r"\b[a-zA-Z][a-zA-Z'-]*[a-zA-Z]\b|\b[a-zA-Z]\b")

_STOP_WORDS: frozenset[str] = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "can", "must", "not",
    "no", "nor", "so", "if", "then", "than", "that", "this", "these",
    "those", "it", "its", "he", "she", "they", "them", "their", "his",
    "her", "our", "your", "we", "you", "who", "whom", "which", "what",
    "where", "when", "how", "all", "each", "every", "both", "few", "more",
    "most", "other", "some", "such", "any", "only", "own", "same", "too",
    "very", "just", "about", "into", "over", "under", "here", "there",
})


def tokenize(text: str) -> list[str]:
    """Extract lowercase word tokens from text."""
    return [m.group().lower() for m in _WORD_RE.finditer(text)]


def _ngrams(tokens: list[str], n: int) -> list[str]:
    if n <= 1:
        return tokens
    return ["_".join(tokens[i : i + n]) for i in range(len(tokens) - n + 1)]


@dataclass
class TfidfVectorizer:
    """Pure-Python TF-IDF vectorizer with n-gram support.

    Produces L2-normalized sparse vectors represented as ``{term: weight}``
    dicts.

    Args:
        max_features: Maximum vocabulary size (most frequent terms kept).
        min_df: Minimum document frequency (absolute count) for a term.
        max_df_ratio: Maximum document frequency as fraction of corpus size.
        ngram_range: Tuple of (min_n, max_n) for n-gram generation.
        use_stopwords: Whether to filter English stopwords.
        sublinear_tf: Use ``1 + log(tf)`` instead of raw term frequency.
    """

    max_features: int = 5000
    min_df: int = 1
    max_df_ratio: float = 1.0
    ngram_range: tuple[int, int] = (1, 2)
    use_stopwords: bool = True
    sublinear_tf: bool = True

    vocabulary_: dict[str, int] = field(default_factory=dict, repr=False)
    idf_: dict[str, float] = field(default_factory=dict, repr=False)
    num_docs_: int = 0

    def fit(self, documents: list[str]) -> "TfidfVectorizer":
        """Learn vocabulary and smoothed IDF weights from a corpus."""
        n_docs = len(documents)
        self.num_docs_ = n_docs

        doc_freq: Counter[str] = Counter()
        for doc in documents:
            doc_freq.update(set(self._extract_terms(doc)))

        max_df_abs = max(1, int(self.max_df_ratio * n_docs))
        pruned = [
            (term, df) for term, df in doc_freq.items()
            if self.min_df <= df <= max_df_abs
        ]
        # Frequency first, then alphabetical, so ties are stable across runs
        pruned.sort(key=lambda x: (-x[1], x[0]))
        top_terms = pruned[: self.max_features]

        self.vocabulary_ = {term: idx for idx, (term, _) in enumerate(top_terms)}
        self.idf_ = {
            term: math.log((1 + n_docs) / (1 + df)) + 1 for term, df in top_terms
        }
        return self

    def transform(self, documents: list[str]) -> list[dict[str, float]]:
        """Transform documents into TF-IDF feature vectors.

        Raises:
            RuntimeError: If the vectorizer has not been fitted.
        """
        if not self.num_docs_:
            raise RuntimeError("Vectorizer has not been fitted. Call fit() first.")

        vectors = []
        for doc in documents:
            tf = Counter(self._extract_terms(doc))
            vec: dict[str, float] = {}
            for term, raw_tf in tf.items():
                if term not in self.vocabulary_:
                    continue
                weighted_tf = 1 + math.log(raw_tf) if self.sublinear_tf else raw_tf
                vec[term] = weighted_tf * self.idf_[term]

            norm = math.sqrt(sum(v ** 2 for v in vec.values())) or 1.0
            vectors.append({k: v / norm for k, v in vec.items()})
        return vectors

    def fit_transform(self, documents: list[str]) -> list[dict[str, float]]:
        self.fit(documents)
        return self.transform(documents)

    def _extract_terms(self, text: str) -> list[str]:
        tokens = tokenize(text)
        if self.use_stopwords:
            tokens = [t for t in tokens if t not in _STOP_WORDS]

        terms: list[str] = []
        min_n, max_n = self.ngram_range
        for n in range(min_n, max_n + 1):
            terms.extend(_ngrams(tokens, n))
        return terms

    def to_dict(self) -> dict:
        return {
            "max_features": self.max_features,
            "min_df": self.min_df,
            "max_df_ratio": self.max_df_ratio,
            "ngram_range": list(self.ngram_range),
            "use_stopwords": self.use_stopwords,
            "sublinear_tf": self.sublinear_tf,
            "vocabulary": self.vocabulary_,
            "idf": self.idf_,
            "num_docs": self.num_docs_,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TfidfVectorizer":
        vec = cls(
            max_features=data["max_features"],
            min_df=data["min_df"],
            max_df_ratio=data["max_df_ratio"],
            ngram_range=tuple(data["ngram_range"]),
            use_stopwords=data["use_stopwords"],
            sublinear_tf=data["sublinear_tf"],
        )
        vec.vocabulary_ = dict(data["vocabulary"])
        vec.idf_ = dict(data["idf"])
        vec.num_docs_ = data["num_docs"]
        return vec


# ---------------------------------------------------------------------------
# Multinomial Naive Bayes
# ---------------------------------------------------------------------------

@dataclass
class MultinomialNB:
    """Multinomial Naive Bayes over sparse weight vectors.

    Args:
        alpha: Laplace smoothing parameter (1.0 = standard smoothing).
    """

    alpha: float = 1.0

    classes_: list[str] = field(default_factory=list, repr=False)
    class_log_prior_: dict[str, float] = field(default_factory=dict, repr=False)
    feature_log_prob_: dict[str, dict[str, float]] = field(default_factory=dict, repr=False)
    vocabulary_: list[str] = field(default_factory=list, repr=False)

    def fit(self, vectors: list[dict[str, float]], labels: list[str]) -> "MultinomialNB":
        """Estimate class priors and per-class feature probabilities.

        Raises:
            ValueError: If vectors and labels differ in length or are empty.
        """
        if len(vectors) != len(labels):
            raise ValueError(
                f"vectors ({len(vectors)}) and labels ({len(labels)}) must have same length"
            )
        if not labels:
            raise ValueError("Cannot fit on an empty training set")

        all_features: set[str] = set()
        for vec in vectors:
            all_features.update(vec)
        self.vocabulary_ = sorted(all_features)

        class_vectors: dict[str, list[dict[str, float]]] = defaultdict(list)
        for vec, label in zip(vectors, labels):
            class_vectors[label].append(vec)

        self.classes_ = sorted(class_vectors)
        n_total = len(labels)
        self.class_log_prior_ = {
            cls: math.log(len(class_vectors[cls]) / n_total) for cls in self.classes_
        }

        # P(feature|class) = (weight sum + alpha) / (class total + alpha * |V|)
        vocab_size = len(self.vocabulary_)
        self.feature_log_prob_ = {}
        for cls in self.classes_:
            feature_sums: dict[str, float] = defaultdict(float)
            for vec in class_vectors[cls]:
                for feat, weight in vec.items():
                    feature_sums[feat] += weight

            denominator = sum(feature_sums.values()) + self.alpha * vocab_size
            self.feature_log_prob_[cls] = {
                feat: math.log((feature_sums.get(feat, 0) + self.alpha) / denominator)
                for feat in self.vocabulary_
            }
        return self

    def log_scores(self, vec: dict[str, float]) -> dict[str, float]:
        """Unnormalized log posterior for each class."""
        if not self.classes_:
            raise RuntimeError("Classifier has not been fitted. Call fit() first.")
        scores: dict[str, float] = {}
        for cls in self.classes_:
            score = self.class_log_prior_[cls]
            log_probs = self.feature_log_prob_[cls]
            for feat, weight in vec.items():
                if feat in log_probs:
                    score += weight * log_probs[feat]
            scores[cls] = score
        return scores

    def predict_one(self, vec: dict[str, float]) -> str:
        scores = self.log_scores(vec)
        # Highest score wins; ties resolve to the alphabetically first class
        return max(self.classes_, key=lambda cls: scores[cls])

    def predict_proba_one(self, vec: dict[str, float]) -> dict[str, float]:
        """Class probabilities for one vector, via log-sum-exp."""
        log_scores = self.log_scores(vec)
        max_score = max(log_scores.values())
        exp_scores = {cls: math.exp(s - max_score) for cls, s in log_scores.items()}
        total = sum(exp_scores.values())
        return {cls: score / total for cls, score in exp_scores.items()}

    def most_informative_features(self, class_name: str, top_n: int = 20) -> list[tuple[str, float]]:
        """Features most likely under ``class_name`` relative to the other classes.

        Raises:
            ValueError: If class_name is not a fitted class.
        """
        if class_name not in self.classes_:
            raise ValueError(f"Unknown class: {class_name}. Known: {self.classes_}")

        target = self.feature_log_prob_[class_name]
        others = [c for c in self.classes_ if c != class_name]
        if not others:
            ranked = sorted(target.items(), key=lambda x: x[1], reverse=True)
            return ranked[:top_n]

        ratios = []
        for feat in self.vocabulary_:
            avg_other = sum(self.feature_log_prob_[c][feat] for c in others) / len(others)
            ratios.append((feat, round(target[feat] - avg_other, 4)))
        ratios.sort(key=lambda x: x[1], reverse=True)
        return ratios[:top_n]

    def to_dict(self) -> dict:
        return {
            "alpha": self.alpha,
            "classes": self.classes_,
            "class_log_prior": self.class_log_prior_,
            "feature_log_prob": self.feature_log_prob_,
            "vocabulary": self.vocabulary_,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MultinomialNB":
        nb = cls(alpha=data["alpha"])
        nb.classes_ = list(data["classes"])
        nb.class_log_prior_ = dict(data["class_log_prior"])
        nb.feature_log_prob_ = {k: dict(v) for k, v in data["feature_log_prob"].items()}
        nb.vocabulary_ = list(data["vocabulary"])
        return nb


# ---------------------------------------------------------------------------
# Registered classifiers
# ---------------------------------------------------------------------------

@register_classifier("naive_bayes")
class NaiveBayesTextClassifier:
    """Text classifier combining :class:`TfidfVectorizer` and :class:`MultinomialNB`.

    Example::

        clf = NaiveBayesTextClassifier(alpha=0.5, ngram_range=(1, 1))
        clf.train_batch(samples)
        clf.classify("The court affirms the judgment.")  # "opinion"

    Args:
        alpha: Laplace smoothing for the Naive Bayes model.
        **vectorizer_kwargs: Options for :class:`TfidfVectorizer`.
    """

    def __init__(self, alpha: float = 1.0, **vectorizer_kwargs: Any) -> None:
        self.alpha = alpha
        self.vectorizer_kwargs = vectorizer_kwargs
        self._vectorizer: Optional[TfidfVectorizer] = None
        self._model: Optional[MultinomialNB] = None

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    @property
    def classes(self) -> list[str]:
        return list(self._model.classes_) if self._model else []

    def train_batch(self, samples: Sequence[Sample]) -> None:
        """Fit vectorizer and model from scratch on ``samples``.

        Raises:
            ValueError: If ``samples`` is empty.
        """
        if not samples:
            raise ValueError("Cannot train on an empty sample set")
        documents = [str(s.input) for s in samples]
        labels = [s.output for s in samples]

        vectorizer = TfidfVectorizer(**self.vectorizer_kwargs)
        vectors = vectorizer.fit_transform(documents)
        self._model = MultinomialNB(alpha=self.alpha).fit(vectors, labels)
        self._vectorizer = vectorizer

    def classify(self, input: Any) -> str:
        """Predict the label of one input.

        Raises:
            RuntimeError: If the classifier has not been trained.
        """
        vec = self._vectorize(input)
        return self._model.predict_one(vec)

    def classify_proba(self, input: Any) -> dict[str, float]:
        """Class probabilities for one input."""
        vec = self._vectorize(input)
        return self._model.predict_proba_one(vec)

    def back_classify(self, category: str, top_n: int = 10) -> list[str]:
        """Terms most characteristic of ``category``."""
        if not self._model:
            raise RuntimeError("Classifier not trained. Call train_batch() first.")
        return [feat for feat, _ in self._model.most_informative_features(category, top_n)]

    def _vectorize(self, input: Any) -> dict[str, float]:
        if not self._model or not self._vectorizer:
            raise RuntimeError("Classifier not trained. Call train_batch() first.")
        return self._vectorizer.transform([str(input)])[0]

    def to_dict(self) -> dict:
        if not self._model or not self._vectorizer:
            raise RuntimeError("Cannot serialize an untrained classifier.")
        return {
            "alpha": self.alpha,
            "vectorizer_kwargs": {
                k: list(v) if isinstance(v, tuple) else v
                for k, v in self.vectorizer_kwargs.items()
            },
            "vectorizer": self._vectorizer.to_dict(),
            "model": self._model.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NaiveBayesTextClassifier":
        kwargs = dict(data.get("vectorizer_kwargs") or {})
        if "ngram_range" in kwargs:
            kwargs["ngram_range"] = tuple(kwargs["ngram_range"])
        clf = cls(alpha=data["alpha"], **kwargs)
        clf._vectorizer = TfidfVectorizer.from_dict(data["vectorizer"])
        clf._model = MultinomialNB.from_dict(data["model"])
        return clf


@register_classifier("majority")
class MajorityClassifier:
    """Predicts the most frequent training label for every input.

    Ties are broken alphabetically.
    """

    def __init__(self) -> None:
        self.label_counts: dict[str, int] = {}

    @property
    def majority(self) -> Optional[str]:
        if not self.label_counts:
            return None
        return min(self.label_counts, key=lambda label: (-self.label_counts[label], label))

    def train_batch(self, samples: Sequence[Sample]) -> None:
        if not samples:
            raise ValueError("Cannot train on an empty sample set")
        self.label_counts = dict(Counter(s.output for s in samples))

    def classify(self, input: Any) -> str:
        if self.majority is None:
            raise RuntimeError("Classifier not trained. Call train_batch() first.")
        return self.majority

    def back_classify(self, category: str) -> list[str]:
        return []

    def to_dict(self) -> dict:
        return {"label_counts": self.label_counts}

    @classmethod
    def from_dict(cls, data: dict) -> "MajorityClassifier":
        clf = cls()
        clf.label_counts = dict(data["label_counts"])
        return clf

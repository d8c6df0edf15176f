"""Tests for the Learner facade."""

from __future__ import annotations

import json

import pytest

from text_learner.classifier import ClassifierBuilder, MajorityClassifier, NaiveBayesTextClassifier
from text_learner.dataset import Sample
from text_learner.errors import (
    DeserializationFailure,
    InvalidRatio,
    IOFailure,
    MissingClassifier,
    NoStatsAvailable,
)
from text_learner.learner import Learner, LearnerConfig


@pytest.fixture
def learner(binary_dataset):
    return Learner(dataset=binary_dataset, train_split=0.8)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:
    """Tests for configuration and the held split."""

    def test_ten_samples_split_eight_two(self, learner):
        assert len(learner.train_set) == 8
        assert len(learner.test_set) == 2
        assert learner.categories == ["ham", "spam"]

    def test_defaults_to_bundled_corpus(self):
        learner = Learner()
        assert len(learner.dataset) == 24
        assert len(learner.train_set) == 19
        assert isinstance(learner.classifier, NaiveBayesTextClassifier)

    def test_invalid_ratio(self, binary_dataset):
        with pytest.raises(InvalidRatio):
            Learner(dataset=binary_dataset, train_split=1.0)

    def test_classifier_name_string(self, binary_dataset):
        learner = Learner(dataset=binary_dataset, classifier="majority")
        assert learner.classifier_builder == ClassifierBuilder("majority")
        assert isinstance(learner.classifier, MajorityClassifier)

    def test_overrides_apply_on_top_of_config(self, binary_dataset):
        config = LearnerConfig(dataset=binary_dataset, train_split=0.5)
        learner = Learner(config, train_split=0.7)
        assert learner.train_split == 0.7
        assert len(learner.train_set) == 7
        assert config.train_split == 0.5

    def test_seeded_shuffle(self, binary_dataset):
        first = Learner(dataset=binary_dataset, shuffle=True, seed=11)
        second = Learner(dataset=binary_dataset, shuffle=True, seed=11)
        assert first.split == second.split

    def test_explicit_categories(self, binary_dataset):
        learner = Learner(dataset=binary_dataset, categories=["spam", "ham", "other"])
        assert learner.categories == ["spam", "ham", "other"]

    def test_empty_categories_are_kept(self, binary_dataset):
        learner = Learner(dataset=binary_dataset, categories=[])
        assert learner.categories == []
        assert set(learner.get_category_partition()) == {"ham", "spam"}


# ---------------------------------------------------------------------------
# Training, evaluation, stats
# ---------------------------------------------------------------------------

class TestEvaluation:
    """Tests for train/eval/cross-validate and get_stats."""

    def test_stats_unavailable_before_evaluation(self, learner):
        with pytest.raises(NoStatsAvailable):
            learner.get_stats()

    def test_eval_then_get_stats(self, learner):
        report = learner.eval()
        stats = learner.get_stats()
        assert report.count == 2
        assert stats["total_count"] == 2
        assert stats["train_count"] == 8
        assert stats["test_count"] == 2
        assert learner.last_eval is report

    def test_get_stats_keys(self, learner):
        learner.eval()
        assert set(learner.get_stats()) == {
            "tp", "tn", "fp", "fn", "confusion", "precision", "accuracy", "recall",
            "f1", "specificity", "total_count", "train_count", "test_count",
            "category_partition",
        }

    def test_train_then_classify(self, learner):
        learner.train()
        assert learner.classify("claim your free cash prize now") == "spam"
        assert learner.classify("project meeting notes for Thursday") == "ham"

    def test_train_on_explicit_set(self, learner, binary_dataset):
        learner.train(binary_dataset[:2])
        assert learner.classifier.classes == ["ham", "spam"]

    def test_binary_eval_counts_sum_to_test_size(self, binary_dataset):
        learner = Learner(dataset=binary_dataset, positive_label="spam")
        report = learner.eval()
        assert report.tp + report.tn + report.fp + report.fn == 2

    def test_default_config_counts_sum_to_test_size(self, learner):
        learner.eval()
        stats = learner.get_stats()
        assert stats["tp"] + stats["tn"] + stats["fp"] + stats["fn"] == stats["total_count"] == 2

    def test_default_config_cross_validation_counts(self, learner):
        learner.cross_validate(num_folds=5)
        stats = learner.get_stats()
        assert stats["tp"] + stats["tn"] + stats["fp"] + stats["fn"] == stats["total_count"] == 10
        assert learner.micro_avg.folds == 5

    def test_cross_validate_caches_averages(self, balanced_100):
        learner = Learner(dataset=balanced_100, classifier="majority")
        result = learner.cross_validate(num_folds=5)
        assert learner.macro_avg is result.macro_avg
        assert learner.micro_avg is result.micro_avg
        assert result.micro_avg.accuracy == pytest.approx(0.5)
        assert learner.get_stats()["total_count"] == 100

    def test_cross_validate_leaves_held_state_alone(self, learner):
        held = learner.classifier
        split_before = learner.split
        learner.cross_validate(num_folds=2)
        assert learner.classifier is held
        assert not held.is_trained
        assert learner.split == split_before

    def test_latest_run_feeds_get_stats(self, learner):
        learner.cross_validate(num_folds=5)
        assert learner.get_stats()["total_count"] == 10
        learner.eval()
        assert learner.get_stats()["total_count"] == 2

    def test_eval_log_reports_sizes(self, learner, caplog):
        with caplog.at_level("INFO", logger="text_learner.learner"):
            learner.eval(log=True)
        assert "Training on 8 samples, testing 2 samples" in caplog.messages


# ---------------------------------------------------------------------------
# Category partition and back-classification
# ---------------------------------------------------------------------------

class TestCategoryPartition:
    """Tests for per-category counts."""

    def test_counts(self, learner):
        assert learner.get_category_partition() == {
            "ham": {"overall": 5, "train": 4, "test": 1},
            "spam": {"overall": 5, "train": 4, "test": 1},
        }

    def test_duplicates_counted_by_position(self):
        dataset = [Sample("same", "x")] * 4 + [Sample("other", "y")]
        learner = Learner(dataset=dataset, train_split=0.6)
        partition = learner.get_category_partition()
        assert partition["x"] == {"overall": 4, "train": 3, "test": 1}
        assert partition["y"] == {"overall": 1, "train": 0, "test": 1}

    def test_declared_category_without_samples(self, binary_dataset):
        learner = Learner(dataset=binary_dataset, categories=["ham", "spam", "other"])
        assert learner.get_category_partition()["other"] == {"overall": 0, "train": 0, "test": 0}


class TestBackClassify:
    def test_naive_bayes_terms(self, learner):
        learner.train()
        terms = learner.back_classify("spam")
        assert terms
        assert all(isinstance(t, str) for t in terms)

    def test_unsupported(self, learner):
        class Plain:
            def train_batch(self, samples):
                pass

            def classify(self, input):
                return "ham"

        learner.classifier = Plain()
        with pytest.raises(NotImplementedError):
            learner.back_classify("spam")


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestPersistence:
    """Tests for saving and restoring classifiers and learner state."""

    def test_save_and_load_default_path(self, learner, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        learner.train()
        learner.serialize_and_save_classifier()
        assert (tmp_path / "classifier.json").exists()

        restored = learner.load_and_deserialize_classifier()
        for sample in learner.test_set:
            assert restored.classify(sample.input) == learner.classify(sample.input)

    def test_save_creates_parent_dirs(self, learner, tmp_path):
        learner.train()
        path = tmp_path / "models" / "nb.json"
        data = learner.serialize_and_save_classifier(path)
        assert path.read_text(encoding="utf-8") == data

    def test_load_attach_replaces_held_classifier(self, binary_dataset, tmp_path):
        source = Learner(dataset=binary_dataset, classifier="majority")
        source.train()
        path = tmp_path / "majority.json"
        source.serialize_and_save_classifier(path)

        target = Learner(dataset=binary_dataset)
        loaded = target.load_and_deserialize_classifier(path, attach=True)
        assert target.classifier is loaded
        assert target.classifier_builder == ClassifierBuilder("majority")

    def test_load_without_attach_keeps_held_classifier(self, learner, tmp_path):
        learner.train()
        path = tmp_path / "nb.json"
        learner.serialize_and_save_classifier(path)
        held = learner.classifier
        learner.load_and_deserialize_classifier(path)
        assert learner.classifier is held

    def test_load_missing_file(self, learner, tmp_path):
        with pytest.raises(IOFailure):
            learner.load_and_deserialize_classifier(tmp_path / "nope.json")

    def test_save_to_unwritable_path(self, learner, tmp_path):
        learner.train()
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(IOFailure):
            learner.serialize_and_save_classifier(blocker / "nested.json")

    def test_load_corrupt_file(self, learner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("garbage", encoding="utf-8")
        with pytest.raises(DeserializationFailure):
            learner.load_and_deserialize_classifier(path)

    def test_to_json_from_json(self, learner):
        learner.eval()
        learner.cross_validate(num_folds=2)
        state = json.loads(json.dumps(learner.to_json()))

        restored = Learner.from_json(state)
        assert restored.split == learner.split
        assert restored.test_set == learner.test_set
        assert restored.micro_avg == learner.micro_avg
        assert restored.macro_avg == learner.macro_avg
        assert restored.last_eval == learner.last_eval
        assert restored.get_stats()["total_count"] == 10
        for sample in learner.test_set:
            assert restored.classify(sample.input) == learner.classify(sample.input)

    def test_to_json_keys(self, learner):
        learner.train()
        data = learner.to_json()
        assert {"classifier", "dataset", "train_set", "test_set", "train_split"} <= set(data)
        assert "macro_avg" not in data

    def test_from_json_requires_classifier(self, learner):
        learner.train()
        data = learner.to_json()
        del data["classifier"]
        with pytest.raises(MissingClassifier):
            Learner.from_json(data)

    @pytest.mark.parametrize("key, index", [("train_indices", 10), ("test_indices", -1)])
    def test_from_json_rejects_out_of_range_indices(self, learner, key, index):
        learner.train()
        data = json.loads(json.dumps(learner.to_json()))
        data[key] = data[key] + [index]
        with pytest.raises(DeserializationFailure, match="out of range"):
            Learner.from_json(data)

    def test_from_json_restores_eval_stats(self, learner):
        learner.eval()
        restored = Learner.from_json(json.loads(json.dumps(learner.to_json())))
        assert restored.get_stats()["total_count"] == 2

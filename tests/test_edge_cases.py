"""Edge-case and regression tests for partitioning, stats and the learner."""

from __future__ import annotations

import pytest

from conftest import ScriptedClassifier, scripted
from text_learner.classifier import MajorityClassifier, NaiveBayesTextClassifier
from text_learner.dataset import Sample
from text_learner.evaluation import cross_validate, evaluate
from text_learner.learner import Learner
from text_learner.partition import k_fold, split
from text_learner.stats import StatsAccumulator, StatsReport

# ---------------------------------------------------------------------------
# Partitioning edge cases
# ---------------------------------------------------------------------------


class TestPartitionEdgeCases:
    """Edge-case tests for split and k_fold."""

    def test_empty_dataset_split(self) -> None:
        result = split([], 0.5)
        assert result.train == [] and result.test == []

    def test_single_sample_rounds_down(self) -> None:
        result = split([Sample("only", "x")], 0.3)
        assert len(result.train) == 0
        assert len(result.test) == 1

    def test_single_sample_rounds_half_up(self) -> None:
        result = split([Sample("only", "x")], 0.5)
        assert len(result.train) == 1
        assert len(result.test) == 0

    def test_two_folds_on_two_samples(self) -> None:
        folds = list(k_fold([Sample("a", "x"), Sample("b", "y")], 2))
        assert [f.test_indices for f in folds] == [(0,), (1,)]
        assert [f.train_indices for f in folds] == [(1,), (0,)]

    def test_non_string_inputs(self) -> None:
        dataset = [Sample({"id": i}, "x") for i in range(4)]
        assert len(list(k_fold(dataset, 2))) == 2


# ---------------------------------------------------------------------------
# Statistics edge cases
# ---------------------------------------------------------------------------


class TestStatsEdgeCases:
    """Edge-case tests for the accumulator."""

    def test_evaluate_empty_test_set(self) -> None:
        report = evaluate(MajorityClassifier(), [Sample("a", "x")], [])
        assert report.count == 0
        assert report.accuracy == 0.0

    def test_single_category_everything_correct(self) -> None:
        acc = StatsAccumulator()
        acc.update_many([("x", "x")] * 3)
        report = acc.calculate_stats()
        assert report.precision == report.recall == report.accuracy == 1.0
        # No negatives exist, so specificity has a zero denominator
        assert report.specificity == 0.0

    def test_positive_label_never_seen(self) -> None:
        acc = StatsAccumulator(positive_label="pos")
        acc.update_many([("neg", "neg"), ("neg", "neg")])
        report = acc.calculate_stats()
        assert (report.tp, report.tn, report.fp, report.fn) == (0, 2, 0, 0)
        assert report.f1 == 0.0

    def test_predicted_label_outside_dataset(self) -> None:
        dataset = scripted([("a", "a"), ("ghost", "a"), ("a", "a"), ("a", "a")])
        result = cross_validate(dataset, ScriptedClassifier, 2)
        assert "ghost" in result.micro_avg.per_category
        assert result.micro_avg.per_category["ghost"]["fp"] == 1

    def test_report_from_minimal_dict(self) -> None:
        report = StatsReport.from_dict({
            "averaging": "micro", "tp": 1, "tn": 0, "fp": 0, "fn": 0, "count": 1,
            "precision": 1.0, "recall": 1.0, "accuracy": 1.0, "specificity": 0.0, "f1": 1.0,
        })
        assert report.per_category == {}
        assert report.folds == 1

    def test_integer_labels(self) -> None:
        acc = StatsAccumulator(positive_label=1)
        acc.update_many([(1, 1), (0, 1), (0, 0)])
        assert acc.calculate_stats().recall == pytest.approx(0.5)


# ---------------------------------------------------------------------------
# Learner edge cases
# ---------------------------------------------------------------------------


class TestLearnerEdgeCases:
    """Edge-case tests for the Learner facade."""

    def test_eval_with_empty_train_split(self) -> None:
        learner = Learner(dataset=[Sample("only", "x")], train_split=0.3)
        with pytest.raises(ValueError, match="empty"):
            learner.eval()

    def test_classify_before_training(self, binary_dataset) -> None:
        learner = Learner(dataset=binary_dataset)
        with pytest.raises(RuntimeError, match="not trained"):
            learner.classify("anything")

    def test_serialize_untrained(self, binary_dataset) -> None:
        learner = Learner(dataset=binary_dataset)
        with pytest.raises(RuntimeError, match="untrained"):
            learner.serialize_classifier()

    def test_binary_cross_validation_total_equals_count(self, binary_dataset) -> None:
        learner = Learner(dataset=binary_dataset, classifier="majority", positive_label="spam")
        learner.cross_validate(num_folds=5)
        stats = learner.get_stats()
        assert stats["tp"] + stats["tn"] + stats["fp"] + stats["fn"] == stats["total_count"] == 10

    def test_unicode_inputs(self) -> None:
        dataset = [
            Sample("Les parties doivent maintenir la confidentialité", "contrat"),
            Sample("La cour rejette l'appel du requérant", "arrêt"),
            Sample("Le locataire paie le loyer chaque mois", "contrat"),
            Sample("La cour confirme le jugement attaqué", "arrêt"),
        ]
        clf = NaiveBayesTextClassifier()
        clf.train_batch(dataset)
        assert clf.classify("la cour confirme") == "arrêt"

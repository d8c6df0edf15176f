"""Shared test fixtures for text-learner tests."""

from __future__ import annotations

from typing import Any, Sequence

import pytest

from text_learner.dataset import Sample, default_dataset


class ScriptedClassifier:
    """Test double whose inputs carry their own prediction.

    Each input is an ``(id, predicted_label)`` tuple; ``classify`` returns the
    second element and records the first.
    """

    instances = 0

    def __init__(self) -> None:
        type(self).instances += 1
        self.trained_on: list[Sample] = []
        self.seen: list[Any] = []

    def train_batch(self, samples: Sequence[Sample]) -> None:
        self.trained_on = list(samples)

    def classify(self, input: Any) -> str:
        self.seen.append(input[0])
        return input[1]


def scripted(predictions_and_labels: Sequence[tuple[str, str]], start: int = 0) -> list[Sample]:
    """Build samples from ``(predicted, actual)`` pairs for :class:`ScriptedClassifier`."""
    return [
        Sample(input=(start + i, predicted), output=actual)
        for i, (predicted, actual) in enumerate(predictions_and_labels)
    ]


SPAM_TEXTS = [
    "Win a free prize now, click the link to claim your cash reward",
    "Cheap pills discount offer, buy now and save big money today",
    "You have been selected for a free vacation, claim your prize",
    "Limited offer: free cash bonus, click now to win big",
    "Congratulations winner, claim your free gift card reward now",
]

HAM_TEXTS = [
    "Can we move the project meeting to Thursday afternoon",
    "Please review the attached quarterly report before the meeting",
    "Lunch with the team is scheduled for noon tomorrow",
    "The project deadline has been moved to next Friday",
    "Thanks for the notes from the planning meeting yesterday",
]


@pytest.fixture
def binary_dataset() -> list[Sample]:
    """Ten samples, five spam and five ham, alternating."""
    samples = []
    for spam, ham in zip(SPAM_TEXTS, HAM_TEXTS):
        samples.append(Sample(input=spam, output="spam"))
        samples.append(Sample(input=ham, output="ham"))
    return samples


@pytest.fixture
def corpus() -> list[Sample]:
    """The bundled four-category corpus (24 samples)."""
    return default_dataset()


@pytest.fixture
def balanced_100() -> list[Sample]:
    """100 samples alternating between two labels."""
    return [
        Sample(input=f"sample {i}", output="ham" if i % 2 == 0 else "spam")
        for i in range(100)
    ]


@pytest.fixture(autouse=True)
def reset_scripted_instances():
    ScriptedClassifier.instances = 0
    yield

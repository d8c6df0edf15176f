"""Labeled samples and dataset loading.

A dataset is an ordered ``list`` of :class:`Sample` objects. Samples are
immutable and may repeat by value; partitioning tracks membership by
position in the list, never by equality.

Supported on-disk formats:

- ``.json``: a list of ``{"input": ..., "output": ...}`` objects, or an
  object with a ``"samples"`` list of the same shape
- ``.jsonl``: one such object per line
- ``.csv``: a header row with ``input`` and ``output`` columns
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Sequence

from .errors import IOFailure

logger = logging.getLogger(__name__)

DEFAULT_DATASET_RESOURCE = "default_dataset.json"


@dataclass(frozen=True)
class Sample:
    """A single labeled data point.

    Attributes:
        input: The raw input handed to ``Classifier.classify`` (usually text).
        output: The category label.
    """

    input: Any
    output: str

    def to_dict(self) -> dict:
        return {"input": self.input, "output": self.output}

    @classmethod
    def from_dict(cls, data: dict) -> "Sample":
        """Build a sample from a mapping with ``input`` and ``output`` keys.

        Raises:
            ValueError: If either key is missing.
        """
        try:
            return cls(input=data["input"], output=str(data["output"]))
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Sample must have 'input' and 'output' fields: {data!r}") from exc


def samples_from_records(records: Iterable[dict]) -> list[Sample]:
    """Convert an iterable of ``{"input", "output"}`` mappings into samples."""
    return [Sample.from_dict(record) for record in records]


def categories_of(dataset: Sequence[Sample]) -> list[str]:
    """Sorted list of distinct labels present in a dataset."""
    return sorted({sample.output for sample in dataset})


def load_dataset(path: str | Path) -> list[Sample]:
    """Load a labeled dataset from a JSON, JSON Lines or CSV file.

    Args:
        path: File to read. The format is chosen from the extension.

    Returns:
        Samples in file order.

    Raises:
        IOFailure: If the file cannot be read.
        ValueError: If the extension is unsupported or a record is malformed.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".json", ".jsonl", ".csv"):
        raise ValueError(
            f"Unsupported dataset format '{path.suffix}'. Supported: .json, .jsonl, .csv"
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise IOFailure(path, exc.strerror or str(exc)) from exc

    if suffix == ".json":
        samples = _parse_json(text, path)
    elif suffix == ".jsonl":
        samples = _parse_jsonl(text, path)
    else:
        samples = _parse_csv(text, path)

    logger.debug("Loaded %d samples from %s", len(samples), path)
    return samples


def default_dataset() -> list[Sample]:
    """Load the small labeled corpus bundled with the package.

    Four document categories (``brief``, ``contract``, ``opinion``,
    ``statute``) with balanced examples; handy for smoke tests and demos.
    """
    text = resources.files("text_learner.data").joinpath(DEFAULT_DATASET_RESOURCE).read_text(
        encoding="utf-8"
    )
    return _parse_json(text, Path(DEFAULT_DATASET_RESOURCE))


# ---------------------------------------------------------------------------
# Format parsers
# ---------------------------------------------------------------------------

def _parse_json(text: str, path: Path) -> list[Sample]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("samples")
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of samples")
    return samples_from_records(data)


def _parse_jsonl(text: str, path: Path) -> list[Sample]:
    samples = []
    for line_no, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON on line {line_no} of {path}: {exc}") from exc
        samples.append(Sample.from_dict(record))
    return samples


def _parse_csv(text: str, path: Path) -> list[Sample]:
    reader = csv.DictReader(text.splitlines())
    fields = reader.fieldnames or []
    if "input" not in fields or "output" not in fields:
        raise ValueError(f"{path} must have 'input' and 'output' columns, found {fields}")
    return [Sample(input=row["input"], output=row["output"]) for row in reader]

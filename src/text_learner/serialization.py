"""String serialization of trained classifiers.

A serialized classifier is a JSON document::

    {
      "format": "text-learner/classifier",
      "version": 1,
      "builder": {"name": "naive_bayes", "params": {...}},
      "state": {...}
    }

``builder`` identifies the registered classifier class and its constructor
parameters; ``state`` is whatever the class's ``to_dict()`` returns.
"""

from __future__ import annotations

import json
import logging

from .classifier import Classifier, ClassifierBuilder, get_classifier_class
from .errors import DeserializationFailure

logger = logging.getLogger(__name__)

FORMAT_NAME = "text-learner/classifier"
FORMAT_VERSION = 1


def to_string(classifier: Classifier, builder: ClassifierBuilder) -> str:
    """Serialize a trained classifier together with the builder that made it."""
    payload = {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "builder": builder.to_dict(),
        "state": classifier.to_dict(),
    }
    return json.dumps(payload)


def from_string(data: str) -> Classifier:
    """Rebuild a classifier from :func:`to_string` output.

    Raises:
        DeserializationFailure: If the data is not valid JSON, has the wrong
            format or version, lacks required fields, or names an unknown
            classifier.
    """
    payload = _load_payload(data)
    builder = read_builder(payload)
    try:
        cls = get_classifier_class(builder.name)
    except ValueError as exc:
        raise DeserializationFailure(str(exc)) from exc

    try:
        classifier = cls.from_dict(payload["state"])
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DeserializationFailure(
            f"Invalid state for classifier '{builder.name}': {exc!r}"
        ) from exc

    logger.debug("Deserialized %s classifier", builder.name)
    return classifier


def read_builder(payload: dict | str) -> ClassifierBuilder:
    """Extract the :class:`ClassifierBuilder` from a serialized classifier."""
    if isinstance(payload, str):
        payload = _load_payload(payload)
    try:
        return ClassifierBuilder.from_dict(payload["builder"])
    except (KeyError, TypeError, AttributeError) as exc:
        raise DeserializationFailure("Serialized classifier has no valid 'builder'") from exc


def _load_payload(data: str) -> dict:
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, TypeError) as exc:
        raise DeserializationFailure(f"Serialized classifier is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict) or payload.get("format") != FORMAT_NAME:
        raise DeserializationFailure("Data is not a serialized text-learner classifier")
    if payload.get("version") != FORMAT_VERSION:
        raise DeserializationFailure(
            f"Unsupported serialization version {payload.get('version')!r}, "
            f"expected {FORMAT_VERSION}"
        )
    if "state" not in payload:
        raise DeserializationFailure("Serialized classifier is missing 'state'")
    return payload

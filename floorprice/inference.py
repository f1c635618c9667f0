"""Run one feature record through a scoring backend.

Prediction is advisory: whatever goes wrong between serializing the
record and reading the score back, the caller gets ``None`` and the
failure is logged. Bad caller input never gets this far, it is rejected
by :func:`floorprice.features.encode`.
"""
from __future__ import annotations

from typing import Any, Optional

import numpy as np
import tensorflow as tf

from floorprice.backend import ScoringBackend
from floorprice.errors import BackendInvocationFailure
from floorprice.features import FeatureRecord, FeatureValue, FloatFeature, StringFeature
from floorprice.utils import get_logger

LOGGER = get_logger(__name__)


def to_tf_feature(value: FeatureValue) -> tf.train.Feature:
    if isinstance(value, StringFeature):
        return tf.train.Feature(bytes_list=tf.train.BytesList(value=value.as_list()))
    if isinstance(value, FloatFeature):
        return tf.train.Feature(float_list=tf.train.FloatList(value=value.as_list()))
    raise TypeError(f"Unsupported feature value {type(value).__name__}")


def serialize_example(record: FeatureRecord) -> bytes:
    features = {name: to_tf_feature(value) for name, value in record.items()}
    example = tf.train.Example(features=tf.train.Features(feature=features))
    return example.SerializeToString()


def extract_scalar(outputs: Any) -> float:
    values = np.asarray(outputs, dtype=np.float32)
    if values.size != 1:
        raise ValueError(f"Expected a single score, got output of shape {values.shape}")
    score = values.reshape(-1)[0]
    if not np.isfinite(score):
        raise ValueError(f"Score {score} is not finite")
    return float(score)


def _score(backend: ScoringBackend, record: FeatureRecord) -> float:
    try:
        batch = [serialize_example(record)]
    except Exception as exc:
        raise BackendInvocationFailure(BackendInvocationFailure.SERIALIZE, str(exc)) from exc

    try:
        with backend.feed(batch) as inputs, backend.run(inputs) as outputs:
            try:
                return extract_scalar(outputs)
            except Exception as exc:
                raise BackendInvocationFailure(BackendInvocationFailure.EXTRACT, str(exc)) from exc
    except BackendInvocationFailure:
        raise
    except Exception as exc:
        raise BackendInvocationFailure(BackendInvocationFailure.INVOKE, str(exc)) from exc


def predict(backend: ScoringBackend, record: FeatureRecord) -> Optional[float]:
    """Score ``record`` as a batch of one; ``None`` if no usable score came back."""
    try:
        score = _score(backend, record)
    except BackendInvocationFailure as exc:
        cause = exc.__cause__
        LOGGER.warning(
            "No floor price estimate (stage=%s, error=%s): %s",
            exc.stage,
            type(cause).__name__ if cause is not None else type(exc).__name__,
            exc,
        )
        return None
    LOGGER.debug("Floor price estimate %.6f", score)
    return score


__all__ = ["extract_scalar", "predict", "serialize_example", "to_tf_feature"]

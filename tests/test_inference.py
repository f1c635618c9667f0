import logging

import numpy as np
import pytest
import tensorflow as tf

from floorprice.features import encode
from floorprice.inference import extract_scalar, predict, serialize_example
from tests.stubs import RecordingBackend


def test_serialized_example_carries_typed_features(request_args):
    example = tf.train.Example.FromString(serialize_example(encode(*request_args)))
    feature = example.features.feature
    assert len(feature) == 9
    assert list(feature["inventory_id"].bytes_list.value) == [b"inv1"]
    assert list(feature["device_os_version"].bytes_list.value) == [b"10"]
    assert list(feature["ex_floor_price"].float_list.value) == [0.5]


def test_predict_returns_backend_score(backend, request_args):
    score = predict(backend, encode(*request_args))
    assert score == float(np.float32(0.42))
    assert len(backend.batches) == 1
    assert len(backend.batches[0]) == 1
    assert backend.batches[0][0] == serialize_example(encode(*request_args))


def test_predict_is_repeatable(backend, request_args):
    first = predict(backend, encode(*request_args))
    second = predict(backend, encode(*request_args))
    assert first == second
    assert backend.batches[0] == backend.batches[1]


@pytest.mark.parametrize("fail_on", ["feed", "run", "mid-run"])
def test_backend_failure_gives_no_estimate(fail_on, request_args):
    backend = RecordingBackend(fail_on=fail_on)
    assert predict(backend, encode(*request_args)) is None
    assert sorted(backend.released) == sorted(backend.acquired)


@pytest.mark.parametrize(
    "output",
    [
        np.array([], dtype=np.float32),
        np.array([0.1, 0.2], dtype=np.float32),
        np.array([np.nan], dtype=np.float32),
        np.array(["not-a-number"], dtype=object),
    ],
)
def test_unusable_output_gives_no_estimate(output, request_args):
    backend = RecordingBackend(output=output)
    assert predict(backend, encode(*request_args)) is None
    assert backend.released == ["output", "input"]


def test_tensors_released_after_success(backend, request_args):
    predict(backend, encode(*request_args))
    assert backend.acquired == ["input", "output"]
    assert backend.released == ["output", "input"]


def test_failure_is_logged_with_stage(caplog, request_args):
    backend = RecordingBackend(fail_on="run")
    with caplog.at_level(logging.WARNING):
        assert predict(backend, encode(*request_args)) is None
    assert "stage=invoke" in caplog.text
    assert "RuntimeError" in caplog.text


def test_extract_scalar_accepts_any_single_element_shape():
    assert extract_scalar(np.array([[1.5]], dtype=np.float32)) == 1.5
    assert extract_scalar(np.float32(2.25)) == 2.25
    with pytest.raises(ValueError):
        extract_scalar(np.array([1.0, 2.0]))

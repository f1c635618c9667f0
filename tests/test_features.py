import math

import numpy as np
import pytest

from floorprice.errors import InvalidInputError
from floorprice.features import FEATURE_NAMES, FeatureRecord, FloatFeature, StringFeature, encode


def test_encode_builds_all_nine_features(request_args):
    record = encode(*request_args)
    assert set(record) == FEATURE_NAMES
    assert len(record) == 9
    for name, value in record.items():
        if name == "ex_floor_price":
            assert isinstance(value, FloatFeature)
        else:
            assert isinstance(value, StringFeature)
            assert isinstance(value.value, bytes)


def test_encode_known_request(request_args):
    record = encode(*request_args)
    assert record["ex_floor_price"].as_list() == [0.5]
    assert record["inventory_id"].as_list() == [b"inv1"]
    assert record["hour_of_day"].value == b"14"
    assert record.as_lists()["device_os"] == [b"android"]


def test_encode_keeps_utf8_text_verbatim():
    record = encode("inv-é", "vidéo", 1, "", "DE", "Köln", "ios", "17.1", "03")
    assert record["inventory_id"].value == "inv-é".encode("utf-8")
    assert record["city_code"].value == "Köln".encode("utf-8")
    assert record["state_code"].value == b""
    assert record["ex_floor_price"].value == 1.0


def test_floor_price_rounds_to_float32():
    record = encode("inv1", "banner", 0.1, "CA", "US", "SF", "android", "10", "14")
    assert record["ex_floor_price"].value == float(np.float32(0.1))


@pytest.mark.parametrize("price", [None, math.nan, math.inf, -math.inf, 1e39, 10**400, -(10**400), "0.5", True])
def test_invalid_floor_price_rejected(price):
    with pytest.raises(InvalidInputError) as excinfo:
        encode("inv1", "banner", price, "CA", "US", "SF", "android", "10", "14")
    assert excinfo.value.feature == "ex_floor_price"


def test_missing_or_non_utf8_text_rejected():
    with pytest.raises(InvalidInputError) as excinfo:
        encode(None, "banner", 0.5, "CA", "US", "SF", "android", "10", "14")
    assert excinfo.value.feature == "inventory_id"
    with pytest.raises(InvalidInputError) as excinfo:
        encode("inv1", 123, 0.5, "CA", "US", "SF", "android", "10", "14")
    assert excinfo.value.feature == "request_type"
    assert "expected text" in str(excinfo.value)
    with pytest.raises(InvalidInputError) as excinfo:
        encode("inv1", "banner", 0.5, "CA", "US", "\ud800", "android", "10", "14")
    assert excinfo.value.feature == "city_code"


def test_record_is_read_only(request_args):
    record = encode(*request_args)
    with pytest.raises(TypeError):
        record["inventory_id"] = StringFeature(b"other")
    with pytest.raises(AttributeError):
        record["inventory_id"].value = b"other"


def test_record_requires_exact_feature_set(request_args):
    features = dict(encode(*request_args))
    features.pop("hour_of_day")
    with pytest.raises(ValueError):
        FeatureRecord(features)
    features["hour_of_day"] = StringFeature(b"14")
    features["user_id"] = StringFeature(b"u1")
    with pytest.raises(ValueError):
        FeatureRecord(features)

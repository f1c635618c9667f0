"""Feature encoding for floor price requests.

Turns the nine raw request signals into a :class:`FeatureRecord`, the
fixed set of named, typed features the scoring model was exported with.
Every feature is a one-element list on the wire: string signals become
``bytes_list`` features, the exchange floor price a ``float_list``.
"""
from __future__ import annotations

import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Union

import numpy as np

from floorprice.errors import InvalidInputError

STRING_FEATURES = (
    "inventory_id",
    "request_type",
    "state_code",
    "country_code",
    "city_code",
    "device_os",
    "device_os_version",
    "hour_of_day",
)
FLOAT_FEATURES = ("ex_floor_price",)
FEATURE_NAMES = frozenset(STRING_FEATURES + FLOAT_FEATURES)


@dataclass(frozen=True)
class StringFeature:
    value: bytes

    def as_list(self) -> List[bytes]:
        return [self.value]


@dataclass(frozen=True)
class FloatFeature:
    value: float

    def as_list(self) -> List[float]:
        return [self.value]


FeatureValue = Union[StringFeature, FloatFeature]


class FeatureRecord(Mapping):
    """Read-only mapping of feature name -> :data:`FeatureValue`."""

    def __init__(self, features: Dict[str, FeatureValue]):
        if set(features) != FEATURE_NAMES:
            missing = sorted(FEATURE_NAMES - set(features))
            extra = sorted(set(features) - FEATURE_NAMES)
            raise ValueError(f"Feature record mismatch: missing={missing} extra={extra}")
        self._features = MappingProxyType(dict(features))

    def __getitem__(self, name: str) -> FeatureValue:
        return self._features[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._features)

    def __len__(self) -> int:
        return len(self._features)

    def __repr__(self) -> str:
        return f"FeatureRecord({dict(self._features)!r})"

    def as_lists(self) -> Dict[str, list]:
        return {name: value.as_list() for name, value in self._features.items()}


def _string_feature(name: str, value: object) -> StringFeature:
    if not isinstance(value, str):
        raise InvalidInputError(name, f"expected text, got {type(value).__name__}")
    try:
        return StringFeature(value.encode("utf-8"))
    except UnicodeEncodeError as exc:
        raise InvalidInputError(name, "not representable as UTF-8") from exc


def _float_feature(name: str, value: object) -> FloatFeature:
    if value is None:
        raise InvalidInputError(name, "value is required")
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInputError(name, f"expected a number, got {type(value).__name__}")
    try:
        with np.errstate(over="ignore"):
            as_f32 = np.float32(value)
    except (OverflowError, ValueError, TypeError) as exc:
        raise InvalidInputError(name, f"{value!r} is not a finite 32-bit float") from exc
    if not math.isfinite(as_f32):
        raise InvalidInputError(name, f"{value!r} is not a finite 32-bit float")
    return FloatFeature(float(as_f32))


def encode(
    inventory_id: str,
    request_type: str,
    ex_floor_price: float,
    state_code: str,
    country_code: str,
    city_code: str,
    device_os: str,
    device_os_version: str,
    hour_of_day: str,
) -> FeatureRecord:
    """Build the feature record for one request.

    Raises:
        InvalidInputError: a string signal is missing or not UTF-8 text, or
            ``ex_floor_price`` is missing, NaN, infinite or outside the
            float32 range.
    """
    raw = {
        "inventory_id": inventory_id,
        "request_type": request_type,
        "state_code": state_code,
        "country_code": country_code,
        "city_code": city_code,
        "device_os": device_os,
        "device_os_version": device_os_version,
        "hour_of_day": hour_of_day,
    }
    features: Dict[str, FeatureValue] = {name: _string_feature(name, value) for name, value in raw.items()}
    features["ex_floor_price"] = _float_feature("ex_floor_price", ex_floor_price)
    return FeatureRecord(features)


__all__ = [
    "FEATURE_NAMES",
    "FLOAT_FEATURES",
    "STRING_FEATURES",
    "FeatureRecord",
    "FeatureValue",
    "FloatFeature",
    "StringFeature",
    "encode",
]

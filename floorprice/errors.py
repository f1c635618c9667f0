"""Errors raised (or absorbed) by the floor price pipeline."""
from __future__ import annotations


class FloorPriceError(Exception):
    """Base class for floor price estimation errors."""


class InvalidInputError(FloorPriceError, ValueError):
    """
    Raised when a caller supplies a value that cannot be encoded.
    Always raised before the scoring backend is touched.
    """

    def __init__(self, feature: str, message: str):
        super().__init__(f"{feature}: {message}")
        self.feature = feature


class BackendInvocationFailure(FloorPriceError, RuntimeError):
    """
    Failure while serializing, running or reading back a prediction.
    Never leaves :func:`floorprice.inference.predict`; it is logged and
    turned into an absent result.
    """

    SERIALIZE = "serialize"
    INVOKE = "invoke"
    EXTRACT = "extract"

    def __init__(self, stage: str, message: str):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage


__all__ = ["BackendInvocationFailure", "FloorPriceError", "InvalidInputError"]

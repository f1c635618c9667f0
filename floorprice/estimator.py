"""Public entry point: recommended floor price for one auction request."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from floorprice.backend import BackendConfig, SavedModelBackend, ScoringBackend
from floorprice.features import encode
from floorprice.inference import predict
from floorprice.utils import get_logger

LOGGER = get_logger(__name__)


class FloorPriceEstimator:
    """
    Wraps a scoring backend behind the nine-signal request contract.

    The backend is injected and shared; the estimator only closes a backend
    it built itself (see :meth:`from_config`).
    """

    def __init__(self, backend: ScoringBackend, owns_backend: bool = False):
        self.backend = backend
        self._owns_backend = owns_backend

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FloorPriceEstimator":
        backend_cfg = BackendConfig.from_dict(config.get("backend"), config.get("_config_dir"))
        estimator = cls(SavedModelBackend.from_config(backend_cfg), owns_backend=True)
        LOGGER.info(
            "Floor price estimator ready (input=%s, output=%s)",
            estimator.backend.input_node,
            estimator.backend.output_node,
        )
        return estimator

    @property
    def model_name(self) -> str:
        model_dir = getattr(self.backend, "model_dir", None)
        return Path(model_dir).name if model_dir else type(self.backend).__name__

    def predict(
        self,
        inventory_id: str,
        request_type: str,
        ex_floor_price: float,
        state_code: str,
        country_code: str,
        city_code: str,
        device_os: str,
        device_os_version: str,
        hour_of_day: str,
    ) -> Optional[float]:
        """Estimate the floor price, or ``None`` when the model gives no estimate.

        Raises:
            InvalidInputError: the inputs cannot be encoded; the backend is
                not called.
        """
        record = encode(
            inventory_id,
            request_type,
            ex_floor_price,
            state_code,
            country_code,
            city_code,
            device_os,
            device_os_version,
            hour_of_day,
        )
        return predict(self.backend, record)

    def close(self) -> None:
        if self._owns_backend:
            close = getattr(self.backend, "close", None)
            if close is not None:
                close()

    def __enter__(self) -> "FloorPriceEstimator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["FloorPriceEstimator"]

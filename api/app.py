from __future__ import annotations

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException

from api.schemas import EstimateRequest, EstimateResponse, HealthResponse
from floorprice.errors import InvalidInputError
from floorprice.estimator import FloorPriceEstimator
from floorprice.utils import get_logger, load_config, set_log_level

LOGGER = get_logger(__name__)

CONFIG_PATH = Path(os.getenv("FLOORPRICE_CONFIG", "configs/default.yaml"))

ESTIMATOR: Optional[FloorPriceEstimator]
MODEL_NAME = "unknown"
if not CONFIG_PATH.exists():
    LOGGER.warning("Config %s not found. API will answer 503 until it is provided.", CONFIG_PATH)
    ESTIMATOR = None
else:
    CONFIG = load_config(CONFIG_PATH)
    set_log_level(CONFIG.get("logging", {}).get("level", "INFO"))
    MODEL_NAME = Path(str(os.getenv("MODEL_DIR") or CONFIG.get("backend", {}).get("model_dir", "unknown"))).name
    try:
        ESTIMATOR = FloorPriceEstimator.from_config(CONFIG)
    except (OSError, ValueError) as exc:
        LOGGER.warning("Model not loaded (%s). API will answer 503 until it is deployed.", exc)
        ESTIMATOR = None


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    if ESTIMATOR is not None:
        ESTIMATOR.close()


app = FastAPI(title="Floor Price Estimation API", version="0.1.0", lifespan=lifespan)


@app.get("/healthz", response_model=HealthResponse)
def healthz() -> HealthResponse:
    status = "ok" if ESTIMATOR is not None else "missing-model"
    model = ESTIMATOR.model_name if ESTIMATOR is not None else MODEL_NAME
    return HealthResponse(status=status, model=model)


@app.post("/estimate", response_model=EstimateResponse)
def estimate_endpoint(request: EstimateRequest) -> EstimateResponse:
    if ESTIMATOR is None:
        raise HTTPException(status_code=503, detail="Model artifact missing")
    try:
        floor_price = ESTIMATOR.predict(
            request.inventory_id,
            request.request_type,
            request.ex_floor_price,
            request.state_code,
            request.country_code,
            request.city_code,
            request.device_os,
            request.device_os_version,
            request.hour_of_day,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if floor_price is None:
        LOGGER.info("No estimate for inventory_id=%s", request.inventory_id)
    return EstimateResponse(floor_price=floor_price, model=ESTIMATOR.model_name)


@app.get("/docs/examples", response_model=dict)
def example_payload() -> dict:
    return {
        "curl": "curl -X POST http://localhost:8080/estimate -H 'Content-Type: application/json' -d '{\"inventory_id\": \"inv1\", \"request_type\": \"banner\", \"ex_floor_price\": 0.5, \"state_code\": \"CA\", \"country_code\": \"US\", \"city_code\": \"SF\", \"device_os\": \"android\", \"device_os_version\": \"10\", \"hour_of_day\": \"14\"}'",
        "note": "floor_price is null when the model gives no estimate",
    }

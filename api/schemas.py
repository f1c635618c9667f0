from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class EstimateRequest(BaseModel):
    inventory_id: str
    request_type: str
    ex_floor_price: Optional[float] = Field(..., description="Exchange floor price of the request")
    state_code: str
    country_code: str
    city_code: str
    device_os: str
    device_os_version: str
    hour_of_day: str


class EstimateResponse(BaseModel):
    floor_price: Optional[float] = Field(None, description="Recommended floor price, null when no estimate")
    model: str


class HealthResponse(BaseModel):
    status: str
    model: str

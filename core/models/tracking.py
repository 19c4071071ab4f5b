from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class WaterLog(BaseModel):
    id: int
    amount_ml: float = Field(..., gt=0)
    logged_at: datetime
    revision: int = 1

    model_config = ConfigDict(from_attributes=True)


class BodyMeasurement(BaseModel):
    id: int
    weight_kg: float = Field(..., gt=0)
    waist_cm: float | None = Field(None, gt=0)
    body_fat_pct: float | None = Field(None, ge=0, le=100)
    measured_at: datetime
    revision: int = 1

    model_config = ConfigDict(from_attributes=True)

from __future__ import annotations
from datetime import datetime

from pydantic import BaseModel, Field


class WaterIn(BaseModel):
    amount_ml: float = Field(..., gt=0, le=5000, examples=[250, 500])
    logged_at: datetime | None = None


class MeasurementIn(BaseModel):
    weight_kg: float = Field(..., gt=0, le=700)
    waist_cm: float | None = Field(None, gt=0)
    body_fat_pct: float | None = Field(None, ge=0, le=100)
    measured_at: datetime | None = None

from __future__ import annotations
from datetime import datetime

from pydantic import BaseModel, Field

from core.models.meal import DraftMealEntry


class MealCreate(DraftMealEntry):
    """A confirmed draft; `eaten_at` defaults to now."""
    eaten_at: datetime | None = None


class MealUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    calories: float | None = Field(None, ge=0)
    protein_g: float | None = Field(None, ge=0)
    carbs_g: float | None = Field(None, ge=0)
    fat_g: float | None = Field(None, ge=0)
    eaten_at: datetime | None = None


class AnalyzeImageIn(BaseModel):
    image_base64: str = Field(
        ..., min_length=16, description="raw base64 or a data:<mime>;base64,<data> URI"
    )
    image_mime: str | None = Field(None, pattern=r"^image/(jpeg|jpg|png|webp|heic)$")


class EstimateTextIn(BaseModel):
    food_entry: str = Field(..., min_length=1, max_length=500, examples=["Apple 100g"])


class Portion(BaseModel):
    ingredient_id: int
    grams: float = Field(..., gt=0)


class ComposeIn(BaseModel):
    portions: list[Portion] = Field(..., min_length=1)
    name: str | None = Field(None, max_length=200)

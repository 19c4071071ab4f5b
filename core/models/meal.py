from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MealSource(str, Enum):
    photo = "photo"
    text = "text"
    pantry = "pantry"
    manual = "manual"


class Macros(BaseModel):
    protein_g: float = Field(0.0, ge=0)
    carbs_g: float = Field(0.0, ge=0)
    fat_g: float = Field(0.0, ge=0)


class NutritionEstimate(BaseModel):
    """Structured answer of the inference service."""
    food_name: str = Field(..., min_length=1)
    description: str | None = None
    calories: float = Field(..., ge=0)
    macros: Macros


class DraftMealEntry(BaseModel):
    """Proposed meal, handed back to the client until it is confirmed."""
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    calories: float = Field(..., ge=0)
    protein_g: float = Field(0.0, ge=0)
    carbs_g: float = Field(0.0, ge=0)
    fat_g: float = Field(0.0, ge=0)
    source: MealSource = MealSource.manual

    @classmethod
    def from_estimate(
        cls, est: NutritionEstimate, source: MealSource, fallback_description: str = ""
    ) -> "DraftMealEntry":
        return cls(
            name=est.food_name,
            description=est.description or fallback_description,
            calories=est.calories,
            protein_g=est.macros.protein_g,
            carbs_g=est.macros.carbs_g,
            fat_g=est.macros.fat_g,
            source=source,
        )


class MealEntry(DraftMealEntry):
    id: int
    eaten_at: datetime
    revision: int = 1

    model_config = ConfigDict(from_attributes=True)

from __future__ import annotations

from pydantic import BaseModel, Field

from core.models.user import UserProfile
from core.tdee import ActivityLevel, Gender, TDEEProfile
from .pantry import IngredientIn


class RegisterIn(BaseModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str | None = Field(None, max_length=100)


class LoginIn(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


class TDEEIn(BaseModel):
    gender: Gender
    age_years: int = Field(..., gt=0, le=130)
    weight_kg: float = Field(..., gt=0, le=700)
    height_cm: float = Field(..., gt=0, le=300)
    activity_multiplier: ActivityLevel = Field(
        ..., description="1.2 | 1.375 | 1.55 | 1.725 | 1.9"
    )

    def to_profile(self) -> TDEEProfile:
        return TDEEProfile(
            weight_kg=self.weight_kg,
            height_cm=self.height_cm,
            age_years=self.age_years,
            gender=self.gender,
            activity_multiplier=self.activity_multiplier,
        )


class TDEEOut(BaseModel):
    bmr: float
    tdee: int
    activity_label: str


class OnboardingIn(TDEEIn):
    display_name: str | None = Field(None, max_length=100)
    # None → default starter pantry, [] → empty pantry
    ingredients: list[IngredientIn] | None = None


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(None, max_length=100)
    gender: Gender | None = None
    age_years: int | None = Field(None, gt=0, le=130)
    weight_kg: float | None = Field(None, gt=0, le=700)
    height_cm: float | None = Field(None, gt=0, le=300)
    activity_multiplier: ActivityLevel | None = None

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from core.tdee import ActivityLevel, Gender, TDEEProfile


class UserProfile(BaseModel):
    """Profile record as read from the `users` table."""
    id: int
    email: str
    display_name: str | None = None
    created_at: datetime
    gender: Gender | None = None
    age_years: int | None = None
    weight_kg: float | None = None
    height_cm: float | None = None
    activity_multiplier: ActivityLevel | None = None
    tdee_goal: int | None = None
    onboarded: bool = False

    model_config = ConfigDict(from_attributes=True)

    def tdee_profile(self) -> TDEEProfile | None:
        """Body parameters, or None while any of them is still unset."""
        fields = (
            self.weight_kg, self.height_cm, self.age_years,
            self.gender, self.activity_multiplier,
        )
        if any(f is None for f in fields):
            return None
        return TDEEProfile(
            weight_kg=self.weight_kg,
            height_cm=self.height_cm,
            age_years=self.age_years,
            gender=self.gender,
            activity_multiplier=self.activity_multiplier,
        )

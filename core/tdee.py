"""
core/tdee.py
────────────────────────────────────────────────────────────────────────
Daily calorie goal from body parameters:

1. BMR  (Mifflin–St Jeor)
2. TDEE (BMR × one of five fixed activity multipliers)
3. Goal = TDEE rounded half-up to whole kcal

Arithmetic runs on `Decimal` built from the decimal form of the inputs,
so a product such as 1673.75 × 1.2 is exactly 2008.5 and rounds to 2009.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from numbers import Real

_LOG = logging.getLogger(__name__)


class InvalidProfileError(ValueError):
    """Raised when body parameters cannot produce a meaningful goal."""


class Gender(str, Enum):
    male = "male"
    female = "female"


class ActivityLevel(float, Enum):
    SEDENTARY = 1.2
    LIGHTLY_ACTIVE = 1.375
    MODERATELY_ACTIVE = 1.55
    VERY_ACTIVE = 1.725
    EXTRA_ACTIVE = 1.9

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ActivityLevel.SEDENTARY: "Sedentary",
    ActivityLevel.LIGHTLY_ACTIVE: "Lightly active",
    ActivityLevel.MODERATELY_ACTIVE: "Moderately active",
    ActivityLevel.VERY_ACTIVE: "Very active",
    ActivityLevel.EXTRA_ACTIVE: "Extra active",
}

# what clients render in the activity picker, sedentary first
ACTIVITY_LEVELS: list[dict[str, object]] = [
    {"label": lvl.label, "value": lvl.value} for lvl in ActivityLevel
]

# Mifflin–St Jeor sex constant
_SEX_OFFSET = {Gender.male: Decimal(5), Gender.female: Decimal(-161)}


# ──────────────────────────────────────────────────────────────────────
#  Profile
# ──────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class TDEEProfile:
    weight_kg: float
    height_cm: float
    age_years: int
    gender: Gender
    activity_multiplier: ActivityLevel

    def __post_init__(self) -> None:
        _require_positive("weight", self.weight_kg)
        _require_positive("height", self.height_cm)
        _require_positive("age", self.age_years)
        if self.age_years != int(self.age_years):
            raise InvalidProfileError("age must be an integer")

        object.__setattr__(self, "gender", _coerce_gender(self.gender))
        object.__setattr__(
            self, "activity_multiplier", _coerce_activity(self.activity_multiplier)
        )


def _require_positive(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        raise InvalidProfileError(f"{name} must be a number")
    if not math.isfinite(value):
        raise InvalidProfileError(f"{name} must be a finite number")
    if value <= 0:
        raise InvalidProfileError(f"{name} must be > 0")


def _coerce_gender(value: object) -> Gender:
    if isinstance(value, Gender):
        return value
    if isinstance(value, str):
        try:
            return Gender(value.strip().lower())
        except ValueError:
            pass
    raise InvalidProfileError("gender must be one of: male, female")


def _coerce_activity(value: object) -> ActivityLevel:
    if isinstance(value, ActivityLevel):
        return value
    if not isinstance(value, bool) and isinstance(value, (Real, Decimal, str)):
        try:
            return ActivityLevel(float(value))
        except ValueError:
            pass
    allowed = ", ".join(str(lvl.value) for lvl in ActivityLevel)
    raise InvalidProfileError(f"activity multiplier must be one of: {allowed}")


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


# ──────────────────────────────────────────────────────────────────────
#  Estimator
# ──────────────────────────────────────────────────────────────────────
def basal_metabolic_rate(profile: TDEEProfile) -> Decimal:
    base = (
        10 * _dec(profile.weight_kg)
        + Decimal("6.25") * _dec(profile.height_cm)
        - 5 * _dec(profile.age_years)
    )
    return base + _SEX_OFFSET[profile.gender]


def daily_energy_expenditure(profile: TDEEProfile) -> Decimal:
    """Unrounded TDEE in kcal."""
    return basal_metabolic_rate(profile) * _dec(profile.activity_multiplier.value)


def calculate_tdee(profile: TDEEProfile) -> int:
    """Daily calorie goal: TDEE rounded half-up to an integer kcal."""
    kcal = int(
        daily_energy_expenditure(profile).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    )
    _LOG.debug("tdee %s → %d kcal", profile, kcal)
    return kcal

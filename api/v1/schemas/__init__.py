"""Re-export individual schema modules for easy imports."""

from .pantry import IngredientIn, IngredientUpdate
from .user import (
    LoginIn,
    OnboardingIn,
    ProfileUpdate,
    RegisterIn,
    TDEEIn,
    TDEEOut,
    TokenOut,
)
from .meal import AnalyzeImageIn, ComposeIn, EstimateTextIn, MealCreate, MealUpdate, Portion
from .tracking import MeasurementIn, WaterIn

__all__ = [
    "IngredientIn",
    "IngredientUpdate",
    "LoginIn",
    "OnboardingIn",
    "ProfileUpdate",
    "RegisterIn",
    "TDEEIn",
    "TDEEOut",
    "TokenOut",
    "AnalyzeImageIn",
    "ComposeIn",
    "EstimateTextIn",
    "MealCreate",
    "MealUpdate",
    "Portion",
    "MeasurementIn",
    "WaterIn",
]

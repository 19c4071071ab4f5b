from __future__ import annotations

from fastapi import APIRouter

from core.tdee import ACTIVITY_LEVELS, basal_metabolic_rate, calculate_tdee
from api.v1.schemas import TDEEIn, TDEEOut

router = APIRouter()


@router.get("/activity-levels", summary="The five activity multipliers and their labels")
def activity_levels() -> list[dict[str, object]]:
    return ACTIVITY_LEVELS


@router.post("/calculate", response_model=TDEEOut, summary="Daily calorie goal for a profile")
def calculate(body: TDEEIn) -> TDEEOut:
    profile = body.to_profile()
    return TDEEOut(
        bmr=float(basal_metabolic_rate(profile)),
        tdee=calculate_tdee(profile),
        activity_label=profile.activity_multiplier.label,
    )

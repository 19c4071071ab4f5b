from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.user import UserProfile
from core.tdee import calculate_tdee
from services.auth import current_user_id
from services.db import PantryIngredient, User, add_docs, commit_staged, get_session, update_doc
from api.v1.schemas import IngredientIn, OnboardingIn, ProfileUpdate

_LOG = logging.getLogger(__name__)

router = APIRouter()

TDEE_FIELDS = ("gender", "age_years", "weight_kg", "height_cm", "activity_multiplier")

# starter pantry offered when onboarding does not send one
DEFAULT_PANTRY = [
    IngredientIn(name="Brown rice", calories=350, protein_g=7, carbs_g=75, fat_g=2),
    IngredientIn(name="Chicken breast", calories=165, protein_g=31, carbs_g=0, fat_g=3.6),
]


# ───────────────────────── helpers ──────────────────────────
async def _load(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _db_values(values: dict[str, Any]) -> dict[str, Any]:
    """Enum members → plain column values."""
    out = dict(values)
    if out.get("gender") is not None:
        out["gender"] = out["gender"].value
    if out.get("activity_multiplier") is not None:
        out["activity_multiplier"] = float(out["activity_multiplier"])
    return out


def _goal_for(user: User, changes: dict[str, Any]) -> int | None:
    """Recomputed goal for `user` with `changes` applied, or None if incomplete."""
    merged = {f: changes.get(f, getattr(user, f)) for f in TDEE_FIELDS}
    draft = UserProfile.model_validate(
        {"id": user.id, "email": user.email, "created_at": user.created_at, **merged}
    )
    profile = draft.tdee_profile()
    return calculate_tdee(profile) if profile else None


# ───────────────────────── onboarding ───────────────────────
@router.post(
    "/me/onboarding",
    response_model=UserProfile,
    status_code=status.HTTP_200_OK,
    summary="Store body parameters, compute the calorie goal and seed the pantry",
)
async def complete_onboarding(
    body: OnboardingIn,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> UserProfile:
    user = await _load(db, user_id)
    if user.onboarded:
        raise HTTPException(
            status_code=409, detail="Already onboarded; edit the profile instead"
        )

    goal = calculate_tdee(body.to_profile())
    values = _db_values(body.model_dump(include=set(TDEE_FIELDS)))
    if body.display_name is not None:
        values["display_name"] = body.display_name
    pantry = DEFAULT_PANTRY if body.ingredients is None else body.ingredients

    # profile, goal and starter pantry land in one commit
    await update_doc(db, user, {**values, "tdee_goal": goal, "onboarded": True}, commit=False)
    rows = await add_docs(
        db,
        [PantryIngredient(user_id=user_id, **ing.model_dump()) for ing in pantry],
        commit=False,
    )
    await commit_staged(db, created=rows, updated=[user])

    _LOG.info("user %s onboarded, goal=%d kcal, pantry=%d", user_id, goal, len(pantry))
    return UserProfile.model_validate(user)


# ───────────────────────── profile ──────────────────────────
@router.get("/me/profile", response_model=UserProfile)
async def get_profile(
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> UserProfile:
    return UserProfile.model_validate(await _load(db, user_id))


@router.patch(
    "/me/profile",
    response_model=UserProfile,
    summary="Edit the profile; the calorie goal follows any body-parameter change",
)
async def update_profile(
    body: ProfileUpdate,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> UserProfile:
    user = await _load(db, user_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return UserProfile.model_validate(user)

    values = _db_values(changes)
    if any(f in values for f in TDEE_FIELDS):
        goal = _goal_for(user, values)
        if goal is not None:
            values["tdee_goal"] = goal
            _LOG.info("user %s goal recomputed: %d kcal", user_id, goal)

    user = await update_doc(db, user, values)
    return UserProfile.model_validate(user)

# api/v1/meals.py
from __future__ import annotations

import base64
import binascii
import logging
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.meal_compose import compose_meal
from core.models.meal import DraftMealEntry, MealEntry, MealSource
from core.models.pantry import PantryIngredient as PantryRecord
from services.auth import current_user_id
from services.db import (
    Meal,
    PantryIngredient,
    add_doc,
    as_utc,
    delete_doc,
    get_owned,
    get_session,
    update_doc,
    utcnow,
)
from services.gemini import (
    InferenceError,
    InferenceUnavailableError,
    NoFoodDetectedError,
    NutritionOracle,
    get_oracle,
)
from api.v1.schemas import AnalyzeImageIn, ComposeIn, EstimateTextIn, MealCreate, MealUpdate

_LOG = logging.getLogger(__name__)

router = APIRouter()

_MIME_ALIASES = {"image/jpg": "image/jpeg"}
_ALLOWED_MIME = {"image/jpeg", "image/png", "image/webp", "image/heic"}


# ───────────────────────── helpers ──────────────────────────
def _decode_image_or_400(body: AnalyzeImageIn) -> tuple[bytes, str]:
    payload, mime = body.image_base64.strip(), body.image_mime
    if payload.startswith("data:"):
        header, _, payload = payload.partition(",")
        if ";base64" not in header:
            raise HTTPException(status_code=400, detail="Data URI must be base64 encoded")
        mime = mime or header[len("data:"):].split(";", 1)[0]

    mime = _MIME_ALIASES.get(mime or "image/jpeg", mime or "image/jpeg")
    if mime not in _ALLOWED_MIME:
        raise HTTPException(status_code=400, detail=f"Unsupported image type: {mime}")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid base64 image: {exc}") from exc
    if len(data) > settings.max_image_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Image too large: {len(data)} bytes > {settings.max_image_bytes}",
        )
    return data, mime


def _inference_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NoFoodDetectedError):
        return HTTPException(status_code=422, detail=f"No food recognised: {exc}")
    if isinstance(exc, InferenceUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    _LOG.warning("nutrition inference failed: %s", exc)
    return HTTPException(status_code=502, detail=f"Nutrition model call failed: {exc}")


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


async def meals_between(
    db: AsyncSession, user_id: int, start: datetime, end: datetime
) -> list[MealEntry]:
    rows = (
        await db.execute(
            select(Meal)
            .where(Meal.user_id == user_id, Meal.eaten_at >= start, Meal.eaten_at < end)
            .order_by(Meal.eaten_at.desc(), Meal.id.desc())
        )
    ).scalars().all()
    return [MealEntry.model_validate(r) for r in rows]


# ───────────────────────── drafts ───────────────────────────
@router.post(
    "/analyze",
    response_model=DraftMealEntry,
    summary="Estimate a meal from a photo (nothing is stored)",
)
async def analyze_photo(
    body: AnalyzeImageIn,
    user_id: int = Depends(current_user_id),  # noqa: ARG001
    oracle: NutritionOracle = Depends(get_oracle),
) -> DraftMealEntry:
    image, mime = _decode_image_or_400(body)
    try:
        est = await oracle.analyze_image(image, mime)
    except (InferenceError, InferenceUnavailableError) as exc:
        raise _inference_http_error(exc) from exc
    return DraftMealEntry.from_estimate(est, MealSource.photo)


@router.post(
    "/estimate",
    response_model=DraftMealEntry,
    summary="Estimate a meal from a free-text entry such as 'Apple 100g'",
)
async def estimate_text(
    body: EstimateTextIn,
    user_id: int = Depends(current_user_id),  # noqa: ARG001
    oracle: NutritionOracle = Depends(get_oracle),
) -> DraftMealEntry:
    try:
        est = await oracle.estimate_text(body.food_entry)
    except (InferenceError, InferenceUnavailableError) as exc:
        raise _inference_http_error(exc) from exc
    return DraftMealEntry.from_estimate(
        est, MealSource.text, fallback_description="Added manually"
    )


@router.post(
    "/compose",
    response_model=DraftMealEntry,
    summary="Compose a meal from pantry ingredients (nothing is stored)",
)
async def compose_from_pantry(
    body: ComposeIn,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> DraftMealEntry:
    ids = {p.ingredient_id for p in body.portions}
    rows = (
        await db.execute(
            select(PantryIngredient).where(
                PantryIngredient.user_id == user_id, PantryIngredient.id.in_(ids)
            )
        )
    ).scalars().all()
    pantry = [PantryRecord.model_validate(r) for r in rows]
    try:
        return compose_meal(
            pantry, [(p.ingredient_id, p.grams) for p in body.portions], name=body.name
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ───────────────────────── confirm / CRUD ───────────────────
@router.post(
    "",
    response_model=MealEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Confirm a draft and log it",
)
async def create_meal(
    body: MealCreate,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MealEntry:
    values = body.model_dump(exclude={"eaten_at"})
    values["source"] = body.source.value
    meal = Meal(
        user_id=user_id,
        eaten_at=as_utc(body.eaten_at) if body.eaten_at else utcnow(),
        **values,
    )
    return MealEntry.model_validate(await add_doc(db, meal))


@router.get("", response_model=list[MealEntry], summary="Meals of one UTC day, newest first")
async def list_meals(
    day: date | None = Query(None, description="YYYY-MM-DD, defaults to today"),
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[MealEntry]:
    start, end = _day_bounds(day or utcnow().date())
    return await meals_between(db, user_id, start, end)


@router.patch("/{meal_id}", response_model=MealEntry)
async def update_meal(
    meal_id: int,
    body: MealUpdate,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MealEntry:
    meal = await get_owned(db, Meal, meal_id, user_id)
    if meal is None:
        raise HTTPException(status_code=404, detail="Meal not found")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "eaten_at" in changes:
        changes["eaten_at"] = as_utc(changes["eaten_at"])
    if changes:
        meal = await update_doc(db, meal, changes)
    return MealEntry.model_validate(meal)


@router.delete("/{meal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meal(
    meal_id: int,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    meal = await get_owned(db, Meal, meal_id, user_id)
    if meal is None:
        raise HTTPException(status_code=404, detail="Meal not found")
    await delete_doc(db, meal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.summary import daily_nutrition, water_summary, weekly_nutrition
from services.auth import current_user_id
from services.db import User, get_session, utcnow
from api.v1.meals import meals_between
from api.v1.water import water_between

router = APIRouter()


def _bounds(first: date, last: date) -> tuple[datetime, datetime]:
    """[first 00:00, last+1 00:00) in naive UTC."""
    return datetime.combine(first, time.min), datetime.combine(last + timedelta(days=1), time.min)


@router.get("/daily", summary="Calories and macros eaten on one day against the goal")
async def daily(
    day: date | None = Query(None, description="YYYY-MM-DD, defaults to today"),
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    day = day or utcnow().date()
    user = await db.get(User, user_id)
    meals = await meals_between(db, user_id, *_bounds(day, day))
    return daily_nutrition(meals, day, user.tdee_goal if user else None)


@router.get("/weekly", summary="Seven-day calorie and macro series ending on `end`")
async def weekly(
    end: date | None = Query(None, description="last day of the window, defaults to today"),
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    end = end or utcnow().date()
    meals = await meals_between(db, user_id, *_bounds(end - timedelta(days=6), end))
    return weekly_nutrition(meals, end)


@router.get("/water", summary="Water drunk on one day plus the seven-day chart")
async def water(
    day: date | None = Query(None, description="YYYY-MM-DD, defaults to today"),
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    day = day or utcnow().date()
    logs = await water_between(db, user_id, *_bounds(day - timedelta(days=6), day))
    return water_summary(logs, day, settings.water_goal_ml)

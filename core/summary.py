"""
core/summary.py
────────────────────────────────────────────────────────────────────────
Aggregations behind the dashboard, water and progress screens.

Days are UTC calendar days. Every per-day series is zero-filled so
clients can plot it without gap handling.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Sequence

import pandas as pd

from core.models.meal import MealEntry
from core.models.tracking import BodyMeasurement, WaterLog

_LOG = logging.getLogger(__name__)

NUTRIENTS = ["calories", "protein_g", "carbs_g", "fat_g"]


# ──────────────────────────── helpers ─────────────────────────── #
def _window(end_day: date, days: int) -> List[date]:
    if days < 1:
        raise ValueError("days must be >= 1")
    return [end_day - timedelta(days=days - 1 - i) for i in range(days)]


def _meals_frame(meals: Sequence[MealEntry]) -> pd.DataFrame:
    if not meals:
        return pd.DataFrame(columns=["day", *NUTRIENTS])
    df = pd.DataFrame(
        [{"eaten_at": m.eaten_at, **{k: getattr(m, k) for k in NUTRIENTS}} for m in meals]
    )
    df["day"] = pd.to_datetime(df["eaten_at"], utc=True).dt.date
    return df


def _per_day(df: pd.DataFrame, cols: List[str], window: List[date]) -> pd.DataFrame:
    """Sum `cols` per day, re-indexed on `window` with zeros for empty days."""
    if df.empty:
        out = pd.DataFrame(0.0, index=window, columns=cols)
        out["entry_count"] = 0
        return out
    grouped = df.groupby("day")
    out = grouped[cols].sum().astype(float)
    out["entry_count"] = grouped.size()
    out = out.reindex(window, fill_value=0)
    out["entry_count"] = out["entry_count"].astype(int)
    return out


def _r(value: float, ndigits: int = 1) -> float:
    return round(float(value), ndigits)


# ──────────────────────────── nutrition ───────────────────────── #
def daily_nutrition(
    meals: Sequence[MealEntry], day: date, goal: int | None
) -> Dict[str, Any]:
    row = _per_day(_meals_frame(meals), NUTRIENTS, [day]).iloc[0]
    consumed = _r(row["calories"], 0)
    return {
        "date": day.isoformat(),
        "calories": consumed,
        "protein_g": _r(row["protein_g"]),
        "carbs_g": _r(row["carbs_g"]),
        "fat_g": _r(row["fat_g"]),
        "entry_count": int(row["entry_count"]),
        "goal": goal,
        "calories_left": None if goal is None else max(0.0, goal - consumed),
    }


def weekly_nutrition(
    meals: Sequence[MealEntry], end_day: date, days: int = 7
) -> Dict[str, Any]:
    window = _window(end_day, days)
    table = _per_day(_meals_frame(meals), NUTRIENTS, window)
    series = [
        {
            "date": d.isoformat(),
            "calories": _r(r["calories"], 0),
            "protein_g": _r(r["protein_g"]),
            "carbs_g": _r(r["carbs_g"]),
            "fat_g": _r(r["fat_g"]),
            "entry_count": int(r["entry_count"]),
        }
        for d, r in table.iterrows()
    ]
    return {
        "start": window[0].isoformat(),
        "end": window[-1].isoformat(),
        "average_calories": _r(table["calories"].mean(), 0),
        "days": series,
    }


# ──────────────────────────── water ───────────────────────────── #
def water_summary(
    logs: Sequence[WaterLog], day: date, goal_ml: int, days: int = 7
) -> Dict[str, Any]:
    window = _window(day, days)
    if logs:
        df = pd.DataFrame([{"logged_at": w.logged_at, "amount_ml": w.amount_ml} for w in logs])
        df["day"] = pd.to_datetime(df["logged_at"], utc=True).dt.date
    else:
        df = pd.DataFrame(columns=["day", "amount_ml"])
    table = _per_day(df, ["amount_ml"], window)

    total = _r(table.loc[day, "amount_ml"], 0)
    return {
        "date": day.isoformat(),
        "total_ml": total,
        "goal_ml": goal_ml,
        "remaining_ml": max(0.0, goal_ml - total),
        "goal_reached": total >= goal_ml,
        "days": [
            {"date": d.isoformat(), "amount_ml": _r(r["amount_ml"], 0)}
            for d, r in table.iterrows()
        ],
    }


# ──────────────────────────── body ────────────────────────────── #
def body_trend(entries: Sequence[BodyMeasurement]) -> Dict[str, Any]:
    ordered = sorted(entries, key=lambda e: e.measured_at)
    series = [
        {
            "id": e.id,
            "measured_at": e.measured_at.isoformat(),
            "weight_kg": e.weight_kg,
            "waist_cm": e.waist_cm,
            "body_fat_pct": e.body_fat_pct,
        }
        for e in ordered
    ]
    if not ordered:
        return {"entries": [], "first": None, "latest": None, "weight_change_kg": None}

    change = _r(ordered[-1].weight_kg - ordered[0].weight_kg)
    _LOG.debug("body trend over %d entries: %+.1f kg", len(ordered), change)
    return {
        "entries": series,
        "first": series[0],
        "latest": series[-1],
        "weight_change_kg": change,
    }

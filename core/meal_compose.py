"""
core/meal_compose.py
────────────────────────────────────────────────────────────────────────
Build a draft meal from pantry ingredients.

Pantry facts are per 100 g, so every portion contributes
`value × grams / 100`. The result is a `DraftMealEntry`; nothing is
stored until the caller confirms it.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from core.models.meal import DraftMealEntry, MealSource
from core.models.pantry import PantryIngredient

_MACROS = ("protein_g", "carbs_g", "fat_g")


def compose_meal(
    pantry: Iterable[PantryIngredient],
    portions: Sequence[tuple[int, float]],
    name: str | None = None,
) -> DraftMealEntry:
    if not portions:
        raise ValueError("at least one ingredient is required")

    by_id = {ing.id: ing for ing in pantry}
    totals = {"calories": 0.0, **{k: 0.0 for k in _MACROS}}
    parts: list[str] = []
    names: list[str] = []

    for ingredient_id, grams in portions:
        ing = by_id.get(ingredient_id)
        if ing is None:
            raise ValueError(f"unknown ingredient: {ingredient_id}")
        if grams <= 0:
            raise ValueError(f"grams must be > 0 for {ing.name}")

        factor = grams / 100
        totals["calories"] += ing.calories * factor
        for k in _MACROS:
            totals[k] += getattr(ing, k) * factor

        parts.append(f"{ing.name} {grams:g}g")
        if ing.name not in names:
            names.append(ing.name)

    return DraftMealEntry(
        name=name or ", ".join(names),
        description=", ".join(parts),
        calories=round(totals["calories"]),
        protein_g=round(totals["protein_g"], 1),
        carbs_g=round(totals["carbs_g"], 1),
        fat_g=round(totals["fat_g"], 1),
        source=MealSource.pantry,
    )

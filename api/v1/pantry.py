from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.pantry import PantryIngredient as PantryRecord
from services.auth import current_user_id
from services.db import PantryIngredient, add_doc, delete_doc, get_owned, get_session, update_doc
from api.v1.schemas import IngredientIn, IngredientUpdate

router = APIRouter()


@router.get("", response_model=list[PantryRecord], summary="Pantry, optionally filtered by name")
async def list_ingredients(
    q: str | None = Query(None, description="case-insensitive name filter"),
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[PantryRecord]:
    stmt = select(PantryIngredient).where(PantryIngredient.user_id == user_id)
    if q and q.strip():
        stmt = stmt.where(func.lower(PantryIngredient.name).contains(q.strip().lower(), autoescape=True))
    rows = (await db.execute(stmt.order_by(PantryIngredient.name))).scalars().all()
    return [PantryRecord.model_validate(r) for r in rows]


@router.post("", response_model=PantryRecord, status_code=status.HTTP_201_CREATED)
async def add_ingredient(
    body: IngredientIn,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> PantryRecord:
    row = await add_doc(db, PantryIngredient(user_id=user_id, **body.model_dump()))
    return PantryRecord.model_validate(row)


@router.patch("/{ingredient_id}", response_model=PantryRecord)
async def update_ingredient(
    ingredient_id: int,
    body: IngredientUpdate,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> PantryRecord:
    row = await get_owned(db, PantryIngredient, ingredient_id, user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Ingredient not found")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        row = await update_doc(db, row, changes)
    return PantryRecord.model_validate(row)


@router.delete("/{ingredient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ingredient(
    ingredient_id: int,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    row = await get_owned(db, PantryIngredient, ingredient_id, user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Ingredient not found")
    await delete_doc(db, row)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

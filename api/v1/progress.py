from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.tracking import BodyMeasurement as MeasurementRecord
from core.summary import body_trend
from services.auth import current_user_id
from services.db import BodyMeasurement, add_doc, as_utc, delete_doc, get_owned, get_session, utcnow
from api.v1.schemas import MeasurementIn

router = APIRouter()


async def _all_measurements(db: AsyncSession, user_id: int) -> list[MeasurementRecord]:
    rows = (
        await db.execute(
            select(BodyMeasurement)
            .where(BodyMeasurement.user_id == user_id)
            .order_by(BodyMeasurement.measured_at.asc(), BodyMeasurement.id.asc())
        )
    ).scalars().all()
    return [MeasurementRecord.model_validate(r) for r in rows]


@router.get("", response_model=list[MeasurementRecord], summary="All measurements, oldest first")
async def list_measurements(
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[MeasurementRecord]:
    return await _all_measurements(db, user_id)


@router.get("/trend", summary="Measurement series with overall weight change")
async def trend(
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return body_trend(await _all_measurements(db, user_id))


@router.post("", response_model=MeasurementRecord, status_code=status.HTTP_201_CREATED)
async def add_measurement(
    body: MeasurementIn,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MeasurementRecord:
    row = BodyMeasurement(
        user_id=user_id,
        weight_kg=body.weight_kg,
        waist_cm=body.waist_cm,
        body_fat_pct=body.body_fat_pct,
        measured_at=as_utc(body.measured_at) if body.measured_at else utcnow(),
    )
    return MeasurementRecord.model_validate(await add_doc(db, row))


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_measurement(
    entry_id: int,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    row = await get_owned(db, BodyMeasurement, entry_id, user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Measurement not found")
    await delete_doc(db, row)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.tracking import WaterLog as WaterRecord
from services.auth import current_user_id
from services.db import WaterLog, add_doc, as_utc, delete_doc, get_owned, get_session, utcnow
from api.v1.schemas import WaterIn

router = APIRouter()


async def water_between(
    db: AsyncSession, user_id: int, start: datetime, end: datetime
) -> list[WaterRecord]:
    rows = (
        await db.execute(
            select(WaterLog)
            .where(WaterLog.user_id == user_id, WaterLog.logged_at >= start, WaterLog.logged_at < end)
            .order_by(WaterLog.logged_at.asc(), WaterLog.id.asc())
        )
    ).scalars().all()
    return [WaterRecord.model_validate(r) for r in rows]


@router.get("", response_model=list[WaterRecord], summary="Water logs of one UTC day, oldest first")
async def list_water(
    day: date | None = Query(None, description="YYYY-MM-DD, defaults to today"),
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> list[WaterRecord]:
    start = datetime.combine(day or utcnow().date(), time.min)
    return await water_between(db, user_id, start, start + timedelta(days=1))


@router.post("", response_model=WaterRecord, status_code=status.HTTP_201_CREATED)
async def log_water(
    body: WaterIn,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> WaterRecord:
    row = WaterLog(
        user_id=user_id,
        amount_ml=body.amount_ml,
        logged_at=as_utc(body.logged_at) if body.logged_at else utcnow(),
    )
    return WaterRecord.model_validate(await add_doc(db, row))


@router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_water(
    log_id: int,
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    row = await get_owned(db, WaterLog, log_id, user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Water log not found")
    await delete_doc(db, row)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

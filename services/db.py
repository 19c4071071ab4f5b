"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* One table per per-user document collection
* Small DAO helpers that commit and then notify the change feed
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, AsyncIterator, Sequence, Type, TypeVar

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncAttrs,
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column
from sqlalchemy.pool import NullPool

from config import settings
from services.change_feed import ChangeEvent, Op, feed


def utcnow() -> datetime:
    """Naive UTC timestamp; every datetime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None


async def _create_engine() -> AsyncEngine:
    # 1) Cloud SQL connector, only when asked for explicitly
    if settings.cloud_sql_instance:
        try:
            from google.cloud.sql.connector import Connector, IPTypes  # type: ignore
        except ImportError as exc:
            raise RuntimeError(
                "cloud-sql-python-connector missing. Run:\n"
                "pip install 'cloud-sql-python-connector[asyncpg]>=1.4.0'"
            ) from exc

        connector = Connector(loop=asyncio.get_running_loop())

        async def _getconn():  # type: ignore[name-defined]
            return await connector.connect_async(
                settings.cloud_sql_instance,
                "asyncpg",
                user=settings.db_user,
                password=settings.db_pass,
                db=settings.db_name,
                ip_type=IPTypes.PRIVATE,
            )

        return create_async_engine(
            "postgresql+asyncpg://",
            async_creator=_getconn,
            pool_pre_ping=True,
        )

    # 2) plain URL (sqlite+aiosqlite by default)
    return create_async_engine(settings.database_url, pool_pre_ping=True)


async def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = await _create_engine()
    return _ENGINE


def use_engine(url: str) -> AsyncEngine:
    """Point the module at another database (tests, one-off scripts)."""
    global _ENGINE
    _ENGINE = create_async_engine(url, poolclass=NullPool)
    return _ENGINE


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(254), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String)
    display_name: Mapped[str | None] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    # TDEE profile; NULL until onboarding
    gender: Mapped[str | None] = mapped_column(String)
    age_years: Mapped[int | None] = mapped_column(Integer)
    weight_kg: Mapped[float | None] = mapped_column(Float)
    height_cm: Mapped[float | None] = mapped_column(Float)
    activity_multiplier: Mapped[float | None] = mapped_column(Float)
    # denormalized DailyCalorieGoal
    tdee_goal: Mapped[int | None] = mapped_column(Integer)
    onboarded: Mapped[bool] = mapped_column(Boolean, default=False)
    revision: Mapped[int] = mapped_column(Integer, default=1)


class Meal(Base):
    __tablename__ = "meals"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text, default="")
    calories: Mapped[float] = mapped_column(Float)
    protein_g: Mapped[float] = mapped_column(Float, default=0.0)
    carbs_g: Mapped[float] = mapped_column(Float, default=0.0)
    fat_g: Mapped[float] = mapped_column(Float, default=0.0)
    source: Mapped[str] = mapped_column(String, default="manual")
    eaten_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    revision: Mapped[int] = mapped_column(Integer, default=1)


class PantryIngredient(Base):
    __tablename__ = "pantry_ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String)
    # per 100 g
    calories: Mapped[float] = mapped_column(Float)
    protein_g: Mapped[float] = mapped_column(Float, default=0.0)
    carbs_g: Mapped[float] = mapped_column(Float, default=0.0)
    fat_g: Mapped[float] = mapped_column(Float, default=0.0)
    revision: Mapped[int] = mapped_column(Integer, default=1)


class WaterLog(Base):
    __tablename__ = "water_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    amount_ml: Mapped[float] = mapped_column(Float)
    logged_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    revision: Mapped[int] = mapped_column(Integer, default=1)


class BodyMeasurement(Base):
    __tablename__ = "body_measurements"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    weight_kg: Mapped[float] = mapped_column(Float)
    waist_cm: Mapped[float | None] = mapped_column(Float)
    body_fat_pct: Mapped[float | None] = mapped_column(Float)
    measured_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    revision: Mapped[int] = mapped_column(Integer, default=1)


# ───────── schema / session helpers ──────────────────────────────────

async def init_models() -> None:
    eng = await engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    eng = await engine()
    async_session = async_sessionmaker(eng, expire_on_commit=False)
    async with async_session() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    eng = await engine()
    async_session = async_sessionmaker(eng, expire_on_commit=False)
    async with async_session() as session:
        yield session


# ───────── DAO helpers ───────────────────────────────────────────────
_Row = TypeVar("_Row", bound=Base)  # type: ignore[valid-type]


def row_to_dict(row: Base) -> dict[str, Any]:  # type: ignore[valid-type]
    out: dict[str, Any] = {}
    for col in row.__table__.columns:
        if col.name in ("password_hash", "user_id"):
            continue
        val = getattr(row, col.name)
        out[col.name] = val.isoformat() if isinstance(val, datetime) else val
    return out


def _notify(row: Base, op: Op, user_id: int) -> None:  # type: ignore[valid-type]
    feed.publish(
        ChangeEvent(
            user_id=user_id,
            collection=row.__tablename__,
            document_id=row.id,
            op=op,
            revision=row.revision,
            data=None if op == "deleted" else row_to_dict(row),
        )
    )


def _owner(row: Base) -> int:  # type: ignore[valid-type]
    return row.id if isinstance(row, User) else row.user_id


async def get_owned(
    db: AsyncSession, model: Type[_Row], doc_id: int, user_id: int
) -> _Row | None:
    row = await db.get(model, doc_id)
    if row is None or row.user_id != user_id:
        return None
    return row


async def add_doc(db: AsyncSession, row: _Row) -> _Row:
    db.add(row)
    await db.commit()
    await db.refresh(row)
    _notify(row, "created", _owner(row))
    return row


async def add_docs(db: AsyncSession, rows: list[_Row], commit: bool = True) -> list[_Row]:
    """With `commit=False` the rows are only staged; see `commit_staged`."""
    db.add_all(rows)
    if not commit:
        return rows
    await db.commit()
    for row in rows:
        await db.refresh(row)
        _notify(row, "created", _owner(row))
    return rows


async def update_doc(
    db: AsyncSession, row: _Row, values: dict[str, Any], commit: bool = True
) -> _Row:
    for key, val in values.items():
        setattr(row, key, val)
    row.revision = (row.revision or 1) + 1
    if not commit:
        return row
    await db.commit()
    await db.refresh(row)
    _notify(row, "updated", _owner(row))
    return row


async def delete_doc(db: AsyncSession, row: Base) -> None:  # type: ignore[valid-type]
    owner = _owner(row)
    await db.delete(row)
    await db.commit()
    _notify(row, "deleted", owner)


async def commit_staged(
    db: AsyncSession,
    created: Sequence[Base] = (),  # type: ignore[valid-type]
    updated: Sequence[Base] = (),  # type: ignore[valid-type]
) -> None:
    """Commit rows staged with `commit=False` in one transaction, then notify."""
    await db.commit()
    for op, rows in (("updated", updated), ("created", created)):
        for row in rows:
            await db.refresh(row)
            _notify(row, op, _owner(row))

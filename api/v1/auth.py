from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.user import UserProfile
from services.auth import create_token, current_user_id, hash_password, verify_password
from services.db import User, get_session
from api.v1.schemas import LoginIn, RegisterIn, TokenOut

_LOG = logging.getLogger(__name__)

router = APIRouter()


async def _by_email(db: AsyncSession, email: str) -> User | None:
    return (
        await db.execute(select(User).where(User.email == email.strip().lower()))
    ).scalar_one_or_none()


# ───────────────────────── register ────────────────────────
@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn, db: AsyncSession = Depends(get_session)) -> TokenOut:
    if await _by_email(db, body.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=body.email.strip().lower(),
        password_hash=hash_password(body.password),
        display_name=body.display_name,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    await db.refresh(user)

    _LOG.info("registered user %s", user.id)
    return TokenOut(access_token=create_token(user.id), user=UserProfile.model_validate(user))


# ───────────────────────── login ───────────────────────────
@router.post("/login", response_model=TokenOut)
async def login(body: LoginIn, db: AsyncSession = Depends(get_session)) -> TokenOut:
    user = await _by_email(db, body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return TokenOut(access_token=create_token(user.id), user=UserProfile.model_validate(user))


# ───────────────────────── me ──────────────────────────────
@router.get("/me", response_model=UserProfile)
async def me(
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> UserProfile:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return UserProfile.model_validate(user)

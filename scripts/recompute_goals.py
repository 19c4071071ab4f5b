"""
scripts/recompute_goals.py
────────────────────────────────────────────────────────────────────────
Refresh the stored daily calorie goal (`users.tdee_goal`) from each
user's current body parameters.

Every onboarded user:

    python -m scripts.recompute_goals

One user only:

    python -m scripts.recompute_goals --user 123
"""
from __future__ import annotations

import asyncio
import logging
from argparse import ArgumentParser

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.user import UserProfile
from core.tdee import InvalidProfileError, calculate_tdee
from services.db import User, init_models, session_scope, update_doc

_LOG = logging.getLogger(__name__)


async def _refresh_user(db: AsyncSession, user: User) -> bool:
    """True when the goal changed."""
    try:
        profile = UserProfile.model_validate(user).tdee_profile()
    except (InvalidProfileError, ValidationError) as exc:
        _LOG.warning("skip %s: invalid body parameters: %s", user.id, exc)
        return False
    if profile is None:
        _LOG.info("skip %s: profile incomplete", user.id)
        return False

    goal = calculate_tdee(profile)
    if goal == user.tdee_goal:
        return False
    _LOG.info("user %s goal %s -> %d kcal", user.id, user.tdee_goal, goal)
    await update_doc(db, user, {"tdee_goal": goal})
    return True


async def recompute_goals(db: AsyncSession, user_id: int | None = None) -> int:
    """Recompute goals for one user or every onboarded user; returns how many changed."""
    stmt = select(User).where(User.onboarded.is_(True))
    if user_id is not None:
        stmt = stmt.where(User.id == user_id)
    users = (await db.execute(stmt.order_by(User.id))).scalars().all()
    if user_id is not None and not users:
        _LOG.warning("skip %s: user not found or not onboarded", user_id)

    changed = 0
    for user in users:
        changed += await _refresh_user(db, user)
    return changed


# ───────────────────────────────
# CLI entrypoint
# ───────────────────────────────
async def _async_main() -> None:
    ap = ArgumentParser()
    ap.add_argument("--user", type=int, help="update only this user-id")
    args = ap.parse_args()

    await init_models()
    async with session_scope() as db:
        changed = await recompute_goals(db, args.user)
    _LOG.info("done, %d goal(s) changed", changed)


if __name__ == "__main__":  # pragma: no cover
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_async_main())

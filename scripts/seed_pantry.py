"""
Seed a user's pantry.

Usage
-----

    # the onboarding starter pair (brown rice, chicken breast)
    python -m scripts.seed_pantry <USER_ID>

    # custom list in a JSON file, values per 100 g
    python -m scripts.seed_pantry <USER_ID> --file path/to/pantry.json
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List

from api.v1.schemas import IngredientIn
from api.v1.users import DEFAULT_PANTRY
from services.db import PantryIngredient, User, add_docs, init_models, session_scope

_LOG = logging.getLogger(__name__)


async def seed_pantry(user_id: int, items: List[IngredientIn]) -> int:
    async with session_scope() as db:
        if await db.get(User, user_id) is None:
            raise ValueError(f"user {user_id} not found")
        rows = await add_docs(
            db, [PantryIngredient(user_id=user_id, **item.model_dump()) for item in items]
        )
    _LOG.info("inserted %d ingredients for user %s", len(rows), user_id)
    return len(rows)


def _load_json(path: Path) -> List[IngredientIn]:
    data: Any = json.loads(path.read_text())
    if not isinstance(data, list):
        raise ValueError("JSON file must contain a list of ingredient dictionaries")
    return [IngredientIn.model_validate(d) for d in data]


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser()
    parser.add_argument("user_id", type=int, help="target user id")
    parser.add_argument(
        "--file",
        type=Path,
        help="optional JSON file with ingredients to seed (overrides defaults)",
    )
    args = parser.parse_args()

    items = _load_json(args.file) if args.file else DEFAULT_PANTRY

    async def _run() -> None:
        await init_models()
        await seed_pantry(args.user_id, items)

    asyncio.run(_run())


if __name__ == "__main__":
    main()

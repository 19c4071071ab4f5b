# tests/test_api.py
"""
HTTP + WebSocket flows against a throw-away SQLite file. The Gemini
oracle is replaced with a canned fake, so nothing leaves the process.
"""
from __future__ import annotations

import asyncio
import base64
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import update
from starlette.websockets import WebSocketDisconnect

from api.v1.schemas import IngredientIn
from core.models.meal import Macros, NutritionEstimate
from main import app
from scripts.recompute_goals import recompute_goals
from scripts.seed_pantry import seed_pantry
from services.db import User, session_scope, use_engine
from services.gemini import InferenceError, NoFoodDetectedError, get_oracle

API = "/api/v1"

ONBOARDING = {
    "gender": "male",
    "age_years": 25,
    "weight_kg": 70,
    "height_cm": 175,
    "activity_multiplier": 1.2,
    "display_name": "Marco",
}

IMAGE_B64 = base64.b64encode(b"\xff\xd8\xff\xe0fake-jpeg-bytes").decode()


class FakeOracle:
    """Canned nutrition answers keyed on the input."""

    async def analyze_image(self, image: bytes, mime_type: str) -> NutritionEstimate:
        if b"empty" in image:
            raise NoFoodDetectedError("no food in picture")
        return NutritionEstimate(
            food_name="Pasta al pomodoro",
            description=f"{mime_type} photo",
            calories=520,
            macros=Macros(protein_g=16, carbs_g=92, fat_g=9),
        )

    async def estimate_text(self, food_entry: str) -> NutritionEstimate:
        if food_entry == "rock":
            raise NoFoodDetectedError("not food")
        if food_entry == "boom":
            raise InferenceError("upstream exploded")
        return NutritionEstimate(
            food_name="Apple", calories=52, macros=Macros(protein_g=0.3, carbs_g=14, fat_g=0.2)
        )


@pytest.fixture
def client(tmp_path):
    use_engine(f"sqlite+aiosqlite:///{tmp_path / 'nutrio.db'}")
    app.dependency_overrides[get_oracle] = FakeOracle
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _register(client, email="marco@example.com", password="s3cret-pass") -> dict:
    r = client.post(f"{API}/auth/register", json={"email": email, "password": password})
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def _onboarded(client, email="marco@example.com", **extra) -> dict:
    headers = _register(client, email)
    r = client.post(f"{API}/users/me/onboarding", json={**ONBOARDING, **extra}, headers=headers)
    assert r.status_code == 200, r.text
    return headers


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


# ── meta / auth ─────────────────────────────────────────────────────
def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_register_login_me(client):
    _register(client)
    assert client.post(
        f"{API}/auth/register", json={"email": "MARCO@example.com", "password": "another-pass"}
    ).status_code == 409

    bad = client.post(f"{API}/auth/login", json={"email": "marco@example.com", "password": "nope"})
    assert bad.status_code == 401

    r = client.post(f"{API}/auth/login", json={"email": "marco@example.com", "password": "s3cret-pass"})
    assert r.status_code == 200
    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {r.json()['access_token']}"})
    assert me.json()["email"] == "marco@example.com"
    assert me.json()["onboarded"] is False
    assert me.json()["tdee_goal"] is None


def test_requires_token(client):
    assert client.get(f"{API}/meals").status_code == 401
    r = client.get(f"{API}/meals", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"


# ── tdee ────────────────────────────────────────────────────────────
def test_tdee_calculate(client):
    r = client.post(f"{API}/tdee/calculate", json=ONBOARDING)
    assert r.status_code == 200
    assert r.json() == {"bmr": 1673.75, "tdee": 2009, "activity_label": "Sedentary"}


def test_tdee_rejects_unknown_multiplier(client):
    r = client.post(f"{API}/tdee/calculate", json={**ONBOARDING, "activity_multiplier": 1.3})
    assert r.status_code == 422


def test_activity_levels(client):
    levels = client.get(f"{API}/tdee/activity-levels").json()
    assert [lvl["value"] for lvl in levels] == [1.2, 1.375, 1.55, 1.725, 1.9]


# ── onboarding / profile ────────────────────────────────────────────
def test_onboarding_persists_goal_and_default_pantry(client):
    headers = _onboarded(client)

    profile = client.get(f"{API}/users/me/profile", headers=headers).json()
    assert profile["tdee_goal"] == 2009
    assert profile["onboarded"] is True
    assert profile["display_name"] == "Marco"
    assert profile["activity_multiplier"] == 1.2

    pantry = client.get(f"{API}/pantry", headers=headers).json()
    assert sorted(i["name"] for i in pantry) == ["Brown rice", "Chicken breast"]

    again = client.post(f"{API}/users/me/onboarding", json=ONBOARDING, headers=headers)
    assert again.status_code == 409


def test_failed_pantry_seed_rolls_back_onboarding(client, monkeypatch):
    headers = _register(client)

    async def _fail(*args, **kwargs):
        raise RuntimeError("pantry insert failed")

    monkeypatch.setattr("api.v1.users.add_docs", _fail)
    with pytest.raises(RuntimeError):
        client.post(f"{API}/users/me/onboarding", json=ONBOARDING, headers=headers)
    monkeypatch.undo()

    profile = client.get(f"{API}/users/me/profile", headers=headers).json()
    assert profile["onboarded"] is False
    assert profile["tdee_goal"] is None
    assert client.get(f"{API}/pantry", headers=headers).json() == []

    retry = client.post(f"{API}/users/me/onboarding", json=ONBOARDING, headers=headers)
    assert retry.status_code == 200
    assert retry.json()["tdee_goal"] == 2009
    assert len(client.get(f"{API}/pantry", headers=headers).json()) == 2


def test_onboarding_with_empty_pantry(client):
    headers = _onboarded(client, ingredients=[])
    assert client.get(f"{API}/pantry", headers=headers).json() == []


def test_profile_edit_recomputes_goal(client):
    headers = _onboarded(client)

    r = client.patch(f"{API}/users/me/profile", json={"weight_kg": 80}, headers=headers)
    # (800 + 1093.75 − 125 + 5) × 1.2 = 2128.5
    assert r.json()["tdee_goal"] == 2129
    assert r.json()["weight_kg"] == 80

    r = client.patch(f"{API}/users/me/profile", json={"display_name": "M."}, headers=headers)
    assert r.json()["tdee_goal"] == 2129


def test_profile_edit_before_onboarding_leaves_goal_unset(client):
    headers = _register(client)
    r = client.patch(f"{API}/users/me/profile", json={"weight_kg": 80}, headers=headers)
    assert r.status_code == 200
    assert r.json()["tdee_goal"] is None


# ── meals ───────────────────────────────────────────────────────────
def test_text_estimate_is_a_draft_until_confirmed(client):
    headers = _onboarded(client)

    draft = client.post(f"{API}/meals/estimate", json={"food_entry": "Apple 100g"}, headers=headers)
    assert draft.status_code == 200
    body = draft.json()
    assert body["name"] == "Apple"
    assert body["description"] == "Added manually"
    assert body["source"] == "text"
    assert client.get(f"{API}/meals", headers=headers).json() == []

    saved = client.post(f"{API}/meals", json=body, headers=headers)
    assert saved.status_code == 201
    meal = saved.json()
    assert meal["revision"] == 1

    listed = client.get(f"{API}/meals", params={"day": _today()}, headers=headers).json()
    assert [m["id"] for m in listed] == [meal["id"]]

    patched = client.patch(f"{API}/meals/{meal['id']}", json={"calories": 60}, headers=headers)
    assert patched.json()["calories"] == 60
    assert patched.json()["revision"] == 2

    assert client.delete(f"{API}/meals/{meal['id']}", headers=headers).status_code == 204
    assert client.delete(f"{API}/meals/{meal['id']}", headers=headers).status_code == 404


@pytest.mark.parametrize("entry, status", [("rock", 422), ("boom", 502)])
def test_text_estimate_errors(client, entry, status):
    headers = _register(client)
    r = client.post(f"{API}/meals/estimate", json={"food_entry": entry}, headers=headers)
    assert r.status_code == status


def test_photo_analysis(client):
    headers = _register(client)

    r = client.post(f"{API}/meals/analyze", json={"image_base64": IMAGE_B64}, headers=headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Pasta al pomodoro"
    assert r.json()["source"] == "photo"

    uri = f"data:image/png;base64,{IMAGE_B64}"
    r = client.post(f"{API}/meals/analyze", json={"image_base64": uri}, headers=headers)
    assert r.json()["description"] == "image/png photo"


def test_photo_analysis_rejects_bad_input(client):
    headers = _register(client)

    r = client.post(f"{API}/meals/analyze", json={"image_base64": "!!!! not base64 !!!!"}, headers=headers)
    assert r.status_code == 400

    gif = f"data:image/gif;base64,{IMAGE_B64}"
    r = client.post(f"{API}/meals/analyze", json={"image_base64": gif}, headers=headers)
    assert r.status_code == 400

    empty = base64.b64encode(b"empty plate, nothing here").decode()
    r = client.post(f"{API}/meals/analyze", json={"image_base64": empty}, headers=headers)
    assert r.status_code == 422


def test_compose_from_pantry(client):
    headers = _onboarded(client)
    ids = {i["name"]: i["id"] for i in client.get(f"{API}/pantry", headers=headers).json()}

    r = client.post(
        f"{API}/meals/compose",
        json={"portions": [
            {"ingredient_id": ids["Brown rice"], "grams": 150},
            {"ingredient_id": ids["Chicken breast"], "grams": 120},
        ]},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["calories"] == 723
    assert r.json()["source"] == "pantry"

    r = client.post(
        f"{API}/meals/compose",
        json={"portions": [{"ingredient_id": 9999, "grams": 100}]},
        headers=headers,
    )
    assert r.status_code == 422


# ── pantry ──────────────────────────────────────────────────────────
def test_pantry_crud_and_search(client):
    headers = _onboarded(client, ingredients=[])

    oats = client.post(
        f"{API}/pantry",
        json={"name": "Rolled oats", "calories": 389, "protein_g": 16.9, "carbs_g": 66, "fat_g": 6.9},
        headers=headers,
    ).json()
    client.post(f"{API}/pantry", json={"name": "Wild rice", "calories": 357}, headers=headers)

    found = client.get(f"{API}/pantry", params={"q": "RICE"}, headers=headers).json()
    assert [i["name"] for i in found] == ["Wild rice"]

    r = client.patch(f"{API}/pantry/{oats['id']}", json={"calories": 380}, headers=headers)
    assert r.json()["calories"] == 380

    other = _register(client, "other@example.com")
    assert client.delete(f"{API}/pantry/{oats['id']}", headers=other).status_code == 404
    assert client.delete(f"{API}/pantry/{oats['id']}", headers=headers).status_code == 204
    assert len(client.get(f"{API}/pantry", headers=headers).json()) == 1


# ── water / progress / summary ──────────────────────────────────────
def test_water_logging_and_summary(client):
    headers = _register(client)

    client.post(f"{API}/water", json={"amount_ml": 250}, headers=headers)
    second = client.post(f"{API}/water", json={"amount_ml": 500}, headers=headers).json()
    assert client.post(f"{API}/water", json={"amount_ml": 0}, headers=headers).status_code == 422

    assert len(client.get(f"{API}/water", headers=headers).json()) == 2

    summary = client.get(f"{API}/summary/water", headers=headers).json()
    assert summary["total_ml"] == 750
    assert summary["goal_ml"] == 2000
    assert summary["remaining_ml"] == 1250
    assert summary["goal_reached"] is False
    assert len(summary["days"]) == 7

    assert client.delete(f"{API}/water/{second['id']}", headers=headers).status_code == 204
    assert client.get(f"{API}/summary/water", headers=headers).json()["total_ml"] == 250


def test_progress_trend(client):
    headers = _register(client)
    for when, kg in [("2024-03-15T08:00:00Z", 77.5), ("2024-03-01T08:00:00Z", 80.0)]:
        r = client.post(f"{API}/progress", json={"weight_kg": kg, "measured_at": when}, headers=headers)
        assert r.status_code == 201

    listed = client.get(f"{API}/progress", headers=headers).json()
    assert [e["weight_kg"] for e in listed] == [80.0, 77.5]

    trend = client.get(f"{API}/progress/trend", headers=headers).json()
    assert trend["weight_change_kg"] == -2.5
    assert trend["latest"]["weight_kg"] == 77.5


def test_daily_and_weekly_summary(client):
    headers = _onboarded(client)
    meal = {"name": "Lunch", "calories": 500, "protein_g": 30, "carbs_g": 60, "fat_g": 12}
    assert client.post(f"{API}/meals", json=meal, headers=headers).status_code == 201

    daily = client.get(f"{API}/summary/daily", params={"day": _today()}, headers=headers).json()
    assert daily["goal"] == 2009
    assert daily["calories"] == 500
    assert daily["calories_left"] == 1509

    weekly = client.get(f"{API}/summary/weekly", headers=headers).json()
    assert weekly["end"] == _today()
    assert weekly["days"][-1]["calories"] == 500


# ── live updates ────────────────────────────────────────────────────
def test_stream_pushes_changes(client):
    headers = _register(client)
    token = headers["Authorization"].split()[1]

    with client.websocket_connect(f"{API}/stream?token={token}&collections=meals") as ws:
        assert ws.receive_json()["type"] == "connected"

        client.post(f"{API}/water", json={"amount_ml": 250}, headers=headers)  # filtered out
        meal = client.post(
            f"{API}/meals", json={"name": "Toast", "calories": 80}, headers=headers
        ).json()
        ev = ws.receive_json()
        assert ev["type"] == "change"
        assert ev["collection"] == "meals"
        assert ev["op"] == "created"
        assert ev["document_id"] == meal["id"]
        assert ev["data"]["name"] == "Toast"

        client.delete(f"{API}/meals/{meal['id']}", headers=headers)
        ev = ws.receive_json()
        assert ev["op"] == "deleted"
        assert ev["data"] is None


def test_stream_survives_binary_frames(client):
    headers = _register(client)
    token = headers["Authorization"].split()[1]

    with client.websocket_connect(f"{API}/stream?token={token}") as ws:
        assert ws.receive_json()["type"] == "connected"
        ws.send_bytes(b"\x00\x01binary")

        client.post(f"{API}/water", json={"amount_ml": 330}, headers=headers)
        ev = ws.receive_json()
        assert ev["collection"] == "water_logs"
        assert ev["data"]["amount_ml"] == 330


def test_stream_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"{API}/stream?token=bogus") as ws:
            ws.receive_json()


# ── scripts ─────────────────────────────────────────────────────────
def test_recompute_goals_script(client):
    headers = _onboarded(client)
    user_id = client.get(f"{API}/auth/me", headers=headers).json()["id"]

    async def _run() -> int:
        async with session_scope() as db:
            await db.execute(update(User).where(User.id == user_id).values(tdee_goal=1))
            await db.commit()
        async with session_scope() as db:
            return await recompute_goals(db)

    assert asyncio.run(_run()) == 1
    assert client.get(f"{API}/users/me/profile", headers=headers).json()["tdee_goal"] == 2009


def test_seed_pantry_script(client):
    headers = _onboarded(client, ingredients=[])
    user_id = client.get(f"{API}/auth/me", headers=headers).json()["id"]

    items = [IngredientIn(name="Lentils", calories=116, protein_g=9, carbs_g=20, fat_g=0.4)]
    assert asyncio.run(seed_pantry(user_id, items)) == 1
    assert [i["name"] for i in client.get(f"{API}/pantry", headers=headers).json()] == ["Lentils"]

    with pytest.raises(ValueError):
        asyncio.run(seed_pantry(999_999, items))

# services/gemini.py
"""
Nutrition inference through Gemini.

The model is treated as a black-box oracle: it gets a photo or a free-text
food entry and must answer with one JSON object matching
`core.models.meal.NutritionEstimate`.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import Any, Protocol

from google import genai
from google.genai import errors as gerrors
from google.genai import types
from pydantic import ValidationError

from config import settings
from core.models.meal import NutritionEstimate
from scripts.helpers import extract_clean_json

_LOG = logging.getLogger(__name__)

_MAX_ATTEMPTS = 4

# ───────────── Errors ─────────────
class InferenceError(Exception):
    """Model call failed or produced something we cannot use."""


class NoFoodDetectedError(InferenceError):
    """The model looked at the input and found no food."""


class InferenceUnavailableError(RuntimeError):
    """No API key configured."""


# ───────────── Prompts ─────────────
_SCHEMA_HINT = """{
  "food_name": "Name of the dish",
  "description": "Short description",
  "calories": 0,
  "macros": {"protein_g": 0, "carbs_g": 0, "fat_g": 0}
}"""

IMAGE_PROMPT = (
    "You are an expert nutritionist. Analyse this photo of food and identify "
    "the visible ingredients.\n"
    "Return ONLY a JSON answer (no markdown) with this structure:\n"
    f"{_SCHEMA_HINT}\n"
    "Be realistic about portion sizes. If there is no food in the picture, "
    'return {"error": "<reason>"} instead.'
)


def text_prompt(food_entry: str) -> str:
    return (
        "You are an expert nutritionist. A user is manually entering a food item "
        "and its quantity. Based on the entry, provide the nutrition facts: food "
        "name, an optional short description, total calories for the stated "
        "quantity and the macros (protein, carbohydrates, fat) in grams.\n"
        f"The user's entry is: {food_entry}\n\n"
        "Return ONLY a JSON answer (no markdown) with this structure:\n"
        f"{_SCHEMA_HINT}\n"
        "Be realistic with the values. If the food cannot be identified, return "
        '{"error": "<reason>"} instead.'
    )


class NutritionOracle(Protocol):
    async def analyze_image(self, image: bytes, mime_type: str) -> NutritionEstimate: ...

    async def estimate_text(self, food_entry: str) -> NutritionEstimate: ...


# ───────────── Parsing ─────────────
def parse_estimate(raw: str | dict) -> NutritionEstimate:
    try:
        data: dict[str, Any] = dict(extract_clean_json(raw))
    except ValueError as exc:
        raise InferenceError(str(exc)) from exc

    if data.get("error") and not data.get("food_name"):
        raise NoFoodDetectedError(str(data["error"]))

    # some answers put the macros at top level
    if "macros" not in data:
        data["macros"] = {k: data.pop(k, 0) for k in ("protein_g", "carbs_g", "fat_g")}

    try:
        return NutritionEstimate.model_validate(data)
    except ValidationError as exc:
        raise InferenceError(f"Unexpected model output: {exc.error_count()} invalid field(s)") from exc


# ───────────── Client ─────────────
class GeminiOracle:
    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self._model = model or settings.gemini_model
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise InferenceUnavailableError("GEMINI_API_KEY not set in environment")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def _generate(self, contents: list[Any]) -> str:
        """Run one JSON completion, retrying on rate limits."""
        client = self._get_client()
        config = types.GenerateContentConfig(
            temperature=0.2,
            response_mime_type="application/json",
        )
        for attempt in range(_MAX_ATTEMPTS):
            try:
                resp = await client.aio.models.generate_content(
                    model=self._model, contents=contents, config=config
                )
                if not resp.text:
                    raise InferenceError("Empty model response")
                return resp.text
            except gerrors.ClientError as e:
                if getattr(e, "code", None) == 429 and attempt + 1 < _MAX_ATTEMPTS:
                    backoff = (2 ** attempt) + random.random()
                    _LOG.warning("Gemini 429, retrying in %.1fs", backoff)
                    await asyncio.sleep(backoff)
                    continue
                raise InferenceError(f"Gemini request rejected: {e}") from e
            except gerrors.APIError as e:
                raise InferenceError(f"Gemini call failed: {e}") from e
        raise InferenceError("Gemini retries exhausted")

    async def analyze_image(self, image: bytes, mime_type: str) -> NutritionEstimate:
        text = await self._generate(
            [types.Part.from_bytes(data=image, mime_type=mime_type), IMAGE_PROMPT]
        )
        _LOG.debug("image analysis raw output: %s", text)
        return parse_estimate(text)

    async def estimate_text(self, food_entry: str) -> NutritionEstimate:
        text = await self._generate([text_prompt(food_entry)])
        _LOG.debug("text estimate raw output: %s", text)
        return parse_estimate(text)


@functools.lru_cache(maxsize=1)
def get_oracle() -> NutritionOracle:
    """FastAPI dependency; tests override it with a fake."""
    return GeminiOracle()

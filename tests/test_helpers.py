# tests/test_helpers.py
import pytest

from scripts.helpers import extract_clean_json
from services.gemini import InferenceError, NoFoodDetectedError, parse_estimate, text_prompt

APPLE = '{"food_name": "Apple", "description": "raw", "calories": 52, "macros": {"protein_g": 0.3, "carbs_g": 14, "fat_g": 0.2}}'


# ── extract_clean_json ──────────────────────────────────────────────
def test_plain_json():
    assert extract_clean_json(APPLE)["food_name"] == "Apple"


def test_fenced_json_inside_chatter():
    raw = f"Sure! Here it is:\n```json\n{APPLE}\n```\nEnjoy."
    assert extract_clean_json(raw)["calories"] == 52


def test_dict_passthrough():
    d = {"a": 1}
    assert extract_clean_json(d) is d


@pytest.mark.parametrize(
    "raw, message",
    [
        ("no json here", "No JSON object"),
        ("[1, 2, 3]", "No JSON object"),
        ('{"food_name": "Apple",}', "Malformed JSON"),
    ],
)
def test_unusable_answers(raw, message):
    with pytest.raises(ValueError, match=message):
        extract_clean_json(raw)


# ── parse_estimate ──────────────────────────────────────────────────
def test_parse_estimate_nested_macros():
    est = parse_estimate(APPLE)
    assert est.food_name == "Apple"
    assert est.macros.carbs_g == 14


def test_parse_estimate_lifts_top_level_macros():
    raw = {"food_name": "Toast", "calories": 80, "protein_g": 3, "carbs_g": 15, "fat_g": 1}
    est = parse_estimate(raw)
    assert est.macros.protein_g == 3
    assert "macros" not in raw  # caller's dict untouched


def test_parse_estimate_no_food():
    with pytest.raises(NoFoodDetectedError, match="no food"):
        parse_estimate('{"error": "no food in picture"}')


def test_parse_estimate_bad_values():
    with pytest.raises(InferenceError, match="invalid field"):
        parse_estimate('{"food_name": "Soup", "calories": -5, "macros": {}}')


def test_parse_estimate_not_json():
    with pytest.raises(InferenceError):
        parse_estimate("I cannot help with that")


def test_text_prompt_embeds_entry_and_schema():
    prompt = text_prompt("Apple 100g")
    assert "The user's entry is: Apple 100g" in prompt
    assert '"food_name"' in prompt

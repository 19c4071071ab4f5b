import json
import re

_FENCED = re.compile(r"```(?:json)?\s*({[\s\S]*?})\s*```")
_BARE = re.compile(r"{[\s\S]*}")


def extract_clean_json(raw: str | dict) -> dict:
    """Pull the JSON object out of an LLM answer (fenced, bare or chatty)."""
    if isinstance(raw, dict):
        return raw

    match = _FENCED.search(raw) or _BARE.search(raw)
    if not match:
        raise ValueError("No JSON object found in model response")

    json_str = match.group(1) if match.re is _FENCED else match.group(0)
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed JSON in model response: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError("Model response JSON is not an object")
    return data

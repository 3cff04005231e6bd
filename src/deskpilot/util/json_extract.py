"""Extraction of JSON objects from free-form model output."""

from __future__ import annotations

import json
import re
from typing import Any


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


class JsonExtractError(ValueError):
    """Raised when no valid JSON object can be recovered from text."""


def _is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except json.JSONDecodeError:
        return False
    return True


def _outer_braces(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start : end + 1]


def _fenced_block(text: str) -> str | None:
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return None


def extract_json(text: str | None) -> str | None:
    """Return the JSON text embedded in ``text`` or ``None``.

    The slice from the first ``{`` to the last ``}`` wins when it parses.
    Otherwise the contents of the first fenced code block are returned when
    they parse. Anything else yields ``None``.
    """
    if not text:
        return None
    candidate = _outer_braces(text)
    if candidate is not None and _is_valid_json(candidate):
        return candidate
    block = _fenced_block(text)
    if block is not None and _is_valid_json(block):
        return block
    return None


def load_json_object(text: str | None) -> dict[str, Any]:
    """Extract and decode a JSON object, raising ``JsonExtractError`` on failure."""
    payload_text = extract_json(text)
    if payload_text is None:
        raise JsonExtractError("Failed to parse response as JSON")
    payload = json.loads(payload_text)
    if not isinstance(payload, dict):
        raise JsonExtractError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload

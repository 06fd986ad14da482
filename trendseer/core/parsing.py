"""Helpers for pulling JSON objects out of free-form model output."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional


def strip_code_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped[3:]
        if stripped.lower().startswith("json"):
            stripped = stripped[len("json"):].lstrip()
        stripped = stripped.rstrip()
        if stripped.endswith("```"):
            stripped = stripped[:-3]
    return stripped.strip()


def extract_json_segment(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` segment of ``text``.

    Braces inside JSON string literals are ignored so that values such as
    ``"goals": "grow {fast}"`` do not end the segment early.
    """
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start: idx + 1]
    return None


def _loads_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        decoded = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return decoded if isinstance(decoded, dict) else None


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode the JSON object in ``text`` or return ``None``.

    The whole (fence-stripped) text is tried first, then the first balanced
    object embedded in surrounding prose.
    """
    if not text or not isinstance(text, str):
        return None
    cleaned = strip_code_fences(text)
    parsed = _loads_object(cleaned)
    if parsed is not None:
        return parsed
    segment = extract_json_segment(cleaned)
    if segment:
        return _loads_object(segment)
    return None

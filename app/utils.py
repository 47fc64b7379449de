"""Utility helpers for the ReelPicks service."""

from __future__ import annotations

import json
import re
import unicodedata
from typing import Any


JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
BARE_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)
WHITESPACE_RE = re.compile(r"\s+")


def normalise_title(value: str) -> str:
    """Return a case and accent insensitive form of a title for comparisons."""

    value = unicodedata.normalize("NFKD", value or "")
    value = "".join(char for char in value if not unicodedata.combining(char))
    return WHITESPACE_RE.sub(" ", value).strip().casefold()


def title_fingerprint(title: str, year: int | None, category: str) -> tuple[str, int, str]:
    """Return the (title, year, category) tuple used to compare titles."""

    return normalise_title(title), int(year or 0), category


def extract_json_object(content: str) -> dict[str, Any]:
    """Extract and parse the first JSON object from the model response."""

    match = JSON_BLOCK_RE.search(content)
    if match:
        payload = match.group(1)
    else:
        match = BARE_JSON_RE.search(content)
        if not match:
            raise ValueError("No JSON object found in response")
        payload = match.group(0)

    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON payload produced by the model") from exc
    try:
        return int(value[:4])
    except ValueError:
        return None


def split_genres(raw: str | None) -> list[str]:
    """Split a comma separated genre string into trimmed names."""

    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]

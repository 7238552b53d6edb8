"""Brand heuristics for telling an R_VOLUTION player apart from other HTTP servers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from rvscan.config import MatchingConfig

DEFAULT_MATCHING = MatchingConfig()


def _serialize(body: Any) -> str:
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, default=str)
    except (TypeError, ValueError):
        return str(body)


def _field_text(body: Mapping[str, Any], key: str) -> str | None:
    value = body.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def body_mentions_brand(body: Any, matching: MatchingConfig = DEFAULT_MATCHING) -> bool:
    text = _serialize(body).lower()
    return any(pattern.lower() in text for pattern in matching.brand_patterns)


def fields_mention_brand(
    body: Any, matching: MatchingConfig = DEFAULT_MATCHING
) -> bool:
    if not isinstance(body, Mapping):
        return False
    marker = matching.field_marker.lower()
    for key in matching.match_fields:
        value = _field_text(body, key)
        if value is not None and marker in value.lower():
            return True
    return False


def classify_body(body: Any, matching: MatchingConfig = DEFAULT_MATCHING) -> bool:
    """Return True when *body* looks like it came from an R_VOLUTION player.

    Either rule is sufficient: a brand spelling anywhere in the serialized
    body, or the field marker inside one of the identity fields of a JSON
    object.
    """
    return body_mentions_brand(body, matching) or fields_mention_brand(body, matching)


def extract_device_name(
    body: Any, fallback: str, matching: MatchingConfig = DEFAULT_MATCHING
) -> str:
    if isinstance(body, Mapping):
        for key in (*matching.name_fields, *matching.fallback_name_fields):
            value = _field_text(body, key)
            if value is not None:
                return value
    return fallback

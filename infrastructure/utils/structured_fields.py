from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def parse_json_object(raw: Any) -> Any | None:
    """
    Parse a JSON-serializable object from a string or pass through dict/list.

    Returns None for empty strings or invalid JSON.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        raw_str = raw.strip()
        if not raw_str:
            return None
        try:
            return json.loads(raw_str)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON string for structured field: %s", raw_str[:200])
            return None
    if isinstance(raw, (dict, list)):
        return raw
    return None


def normalize_metadata(raw: Any) -> dict[str, Any]:
    """Stored plant metadata as a dict; anything unreadable becomes ``{}``."""
    parsed = parse_json_object(raw)
    if not isinstance(parsed, dict):
        return {}
    return dict(parsed)


def normalize_synonyms(raw: Any) -> list[str] | None:
    """Stored synonyms as a list of strings, or None when absent."""
    parsed = parse_json_object(raw)
    if not isinstance(parsed, list):
        return None
    return [item for item in parsed if isinstance(item, str)]


def dump_json_field(value: Any) -> str | None:
    """Safely serialize structured fields to JSON strings for storage."""
    if value is None:
        return None
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        logger.warning("Unable to serialize structured field to JSON: %r", value)
        return None

"""
Input Validation Utilities
==========================

Centralized validation and sanitization of untrusted request input.

Every helper here is pure: bad input is reported through the return value
(``None``, ``""`` or a result object), never raised. Route handlers turn an
invalid result into a 400 response.

Features:
- Positive integer IDs from query strings / form fields
- Trimmed, length-capped free text
- Search queries safe to forward to upstream plant APIs
- Size-capped JSON metadata documents
- Required-field checks for JSON bodies
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_STRING_MAX_LENGTH = 255
DEFAULT_QUERY_MAX_LENGTH = 100
DEFAULT_METADATA_MAX_BYTES = 10 * 1024

_ID_RE = re.compile(r"\d+", re.ASCII)
# Letters, digits, underscore, whitespace, hyphen and apostrophe ("Bird's Nest").
_QUERY_STRIP_RE = re.compile(r"[^\w\s\-']", re.ASCII)


# =============================================================================
# Scalars
# =============================================================================

def validate_id(value: Any) -> Optional[int]:
    """
    Validate a raw ID parameter.

    Only strings made entirely of ASCII digits are accepted: no whitespace,
    sign, decimal point or trailing characters. Leading zeros are allowed.

    Args:
        value: Raw value (normally a query-string or form field)

    Returns:
        Positive integer, or None if invalid
    """
    if not value or not isinstance(value, str):
        return None

    if not _ID_RE.fullmatch(value):
        return None

    parsed = int(value)
    if parsed <= 0:
        return None

    return parsed


def validate_string(value: Any, max_length: int = DEFAULT_STRING_MAX_LENGTH) -> Optional[str]:
    """
    Validate and sanitize a free-text input.

    - Rejects None and non-strings
    - Strips leading/trailing whitespace
    - Returns None for strings that are empty after trimming
    - Truncates (does not reject) content longer than ``max_length``

    Args:
        value: Input value
        max_length: Maximum allowed length

    Returns:
        Sanitized string or None
    """
    if value is None or not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    if len(trimmed) > max_length:
        return trimmed[:max_length]

    return trimmed


def validate_search_query(value: Any, max_length: int = DEFAULT_QUERY_MAX_LENGTH) -> str:
    """
    Sanitize a search query before it is forwarded to an upstream API.

    Never fails: bad input becomes an empty string. The query is trimmed,
    truncated, then stripped of every character outside letters, digits,
    underscore, whitespace, hyphen and apostrophe.
    """
    if not value or not isinstance(value, str):
        return ""

    sanitized = value.strip()[:max_length]
    return _QUERY_STRIP_RE.sub("", sanitized)


# =============================================================================
# Structured payloads
# =============================================================================

def sanitize_metadata(value: Any, max_bytes: int = DEFAULT_METADATA_MAX_BYTES) -> Optional[dict[str, Any]]:
    """
    Validate a free-form metadata document.

    The document must be a JSON object (not an array) whose serialized form
    fits in ``max_bytes``. The returned value is a fresh deep copy built by a
    serialize/deserialize round-trip, so no caller-owned object (or anything
    that is not plain JSON) survives into storage.

    Returns:
        Sanitized dict, or None if invalid
    """
    if not isinstance(value, dict):
        return None

    try:
        encoded = json.dumps(value, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        logger.error("Invalid metadata: %s", exc)
        return None

    size = len(encoded.encode("utf-8"))
    if size > max_bytes:
        logger.warning("Metadata exceeds size limit: %s > %s", size, max_bytes)
        return None

    return json.loads(encoded)


@dataclass(frozen=True)
class RequiredFieldsResult:
    """Outcome of :func:`validate_required`."""

    valid: bool
    missing: list[str] = field(default_factory=list)


def validate_required(body: Mapping[str, Any], fields: Iterable[str]) -> RequiredFieldsResult:
    """
    Check that required fields are present in a request body.

    A field is missing when it is absent, None, or an empty string.
    ``0`` and ``False`` count as present.
    """
    missing: list[str] = []
    for name in fields:
        value = body.get(name) if body else None
        if value is None or (isinstance(value, str) and value == ""):
            missing.append(name)

    return RequiredFieldsResult(valid=not missing, missing=missing)

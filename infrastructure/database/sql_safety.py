"""
SQL Safety Utilities
====================

Helpers that prevent SQL-injection via dict-key → column-name interpolation.

Plant payloads come straight from request JSON, so their keys must never
reach a ``SET …`` or ``INSERT … VALUES`` fragment unchecked.
``safe_columns()`` filters a mapping down to an explicit allowlist; unknown
keys are dropped and logged.

Usage::

    from infrastructure.database.sql_safety import safe_columns, build_set_clause

    cols = safe_columns(payload, PLANT_WRITABLE_COLUMNS, context="update_plant")
    set_clause, values = build_set_clause(cols)
    db.execute(f"UPDATE Plants SET {set_clause} WHERE id = ?", [*values, plant_id])
"""

from __future__ import annotations

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Column names must be simple identifiers: letters, digits, underscores.
_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def safe_columns(
    data: dict[str, Any],
    allowed: frozenset[str] | set[str],
    *,
    context: str = "",
) -> dict[str, Any]:
    """Return *data* filtered to keys present in *allowed*.

    Parameters
    ----------
    data:
        Incoming column → value mapping.
    allowed:
        Column names that may be interpolated into SQL.
    context:
        Label for log messages (e.g. ``"insert_plant"``).
    """
    filtered: dict[str, Any] = {}
    rejected: list[str] = []

    for key, value in data.items():
        if key not in allowed or not _IDENT_RE.match(key):
            rejected.append(key)
            continue
        filtered[key] = value

    if rejected:
        logger.warning("safe_columns(%s): dropped non-allowed keys: %s", context or "?", rejected)

    return filtered


def build_set_clause(cols: dict[str, Any]) -> tuple[str, list[Any]]:
    """Build a ``SET col1 = ?, col2 = ?`` fragment from *cols*.

    >>> build_set_clause({"nickname": "Monty", "status": "alive"})
    ('nickname = ?, status = ?', ['Monty', 'alive'])
    """
    clause = ", ".join(f"{k} = ?" for k in cols)
    return clause, list(cols.values())


def build_insert_parts(cols: dict[str, Any]) -> tuple[str, str, list[Any]]:
    """Build column-list, placeholder-list, and values for INSERT.

    >>> build_insert_parts({"scientific_name": "Monstera deliciosa", "genus": "Monstera"})
    ('scientific_name, genus', '?, ?', ['Monstera deliciosa', 'Monstera'])
    """
    keys = list(cols.keys())
    return ", ".join(keys), ", ".join("?" for _ in keys), list(cols.values())

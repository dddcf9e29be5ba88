from __future__ import annotations

import logging
import sqlite3
from typing import Any

from app.domain.exceptions import RepositoryError
from app.utils.time import iso_now
from infrastructure.database.sql_safety import build_insert_parts, build_set_clause, safe_columns

# Columns a caller may write. id, added_at and updated_at are server-assigned.
PLANT_WRITABLE_COLUMNS: frozenset[str] = frozenset(
    {
        "scientific_name",
        "common_name",
        "family",
        "family_common_name",
        "genus",
        "image_url",
        "author",
        "bibliography",
        "year",
        "synonyms",
        "slug",
        "trefle_id",
        "perenual_id",
        "metadata",
        "notes",
        "nickname",
        "location",
        "acquired_date",
        "status",
    }
)

PLANT_LIST_COLUMNS = (
    "id",
    "scientific_name",
    "common_name",
    "family",
    "family_common_name",
    "genus",
    "image_url",
    "nickname",
    "location",
    "status",
    "metadata",
    "added_at",
)


class PlantOperations:
    """Plants table helpers shared across database handlers.

    Values arrive already validated and serialized (``metadata`` and
    ``synonyms`` as JSON text); these methods only move rows.
    """

    def insert_plant(self, **fields: Any) -> sqlite3.Row:
        """Insert a plant and return ``(id, scientific_name, common_name, added_at)``."""
        cols = safe_columns(fields, PLANT_WRITABLE_COLUMNS, context="insert_plant")
        cols.setdefault("metadata", "{}")
        cols["added_at"] = iso_now()
        columns_sql, placeholders_sql, values = build_insert_parts(cols)
        try:
            db = self.get_db()
            cursor = db.execute(
                f"INSERT INTO Plants ({columns_sql}) VALUES ({placeholders_sql})",  # nosec B608: allowlisted columns
                values,
            )
            db.commit()
            return db.execute(
                "SELECT id, scientific_name, common_name, added_at FROM Plants WHERE id = ?",
                (cursor.lastrowid,),
            ).fetchone()
        except sqlite3.Error as exc:
            logging.error("Error inserting plant: %s", exc)
            raise RepositoryError("Failed to insert plant") from exc

    def update_plant(self, plant_id: int, **fields: Any) -> sqlite3.Row | None:
        """Rewrite every writable column of a plant.

        Columns not present in *fields* are cleared to NULL (``metadata`` to
        ``'{}'``).

        Returns:
            ``(id, scientific_name, common_name, updated_at)`` or None when
            the plant does not exist
        """
        given = safe_columns(fields, PLANT_WRITABLE_COLUMNS, context="update_plant")
        cols = {name: given.get(name) for name in sorted(PLANT_WRITABLE_COLUMNS)}
        if cols["metadata"] is None:
            cols["metadata"] = "{}"
        cols["updated_at"] = iso_now()
        set_clause, values = build_set_clause(cols)
        try:
            db = self.get_db()
            cursor = db.execute(
                f"UPDATE Plants SET {set_clause} WHERE id = ?",  # nosec B608: allowlisted columns
                [*values, plant_id],
            )
            db.commit()
            if cursor.rowcount == 0:
                return None
            return db.execute(
                "SELECT id, scientific_name, common_name, updated_at FROM Plants WHERE id = ?",
                (plant_id,),
            ).fetchone()
        except sqlite3.Error as exc:
            logging.error("Error updating plant %s: %s", plant_id, exc)
            raise RepositoryError("Failed to update plant") from exc

    def get_plant_by_id(self, plant_id: int) -> sqlite3.Row | None:
        try:
            db = self.get_db()
            return db.execute("SELECT * FROM Plants WHERE id = ?", (plant_id,)).fetchone()
        except sqlite3.Error as exc:
            logging.error("Error getting plant by ID: %s", exc)
            raise RepositoryError("Failed to fetch plant") from exc

    def get_all_plants(self) -> list[sqlite3.Row]:
        """All plants, newest first. No pagination."""
        try:
            db = self.get_db()
            return db.execute(
                f"SELECT {', '.join(PLANT_LIST_COLUMNS)} FROM Plants ORDER BY added_at DESC, id DESC"  # nosec B608
            ).fetchall()
        except sqlite3.Error as exc:
            logging.error("Error getting plants: %s", exc)
            raise RepositoryError("Failed to list plants") from exc

    def count_plants(self) -> int:
        db = self.get_db()
        return int(db.execute("SELECT COUNT(*) FROM Plants").fetchone()[0])

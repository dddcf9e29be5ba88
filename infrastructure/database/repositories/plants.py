"""
Plant Repository
================

Repository for the personal plant catalog.

Responsibilities:
- Plant CRUD operations (create, read, full update, list)
- JSON encoding of ``metadata`` and ``synonyms`` on the way in
- Decoding of those columns back into Python values on the way out

Rows leave this module as plain dicts keyed by column name.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from infrastructure.database.ops.plants import PlantOperations
from infrastructure.utils.structured_fields import (
    dump_json_field,
    normalize_metadata,
    normalize_synonyms,
)

_JSON_COLUMNS = ("metadata", "synonyms")


def _encode(fields: Mapping[str, Any]) -> Dict[str, Any]:
    encoded = dict(fields)
    for column in _JSON_COLUMNS:
        if column in encoded:
            encoded[column] = dump_json_field(encoded[column])
    return encoded


def row_to_dict(row: Any) -> Dict[str, Any]:
    """Convert a ``sqlite3.Row`` into a dict with JSON columns decoded."""
    data = dict(row)
    if "metadata" in data:
        data["metadata"] = normalize_metadata(data["metadata"])
    if "synonyms" in data:
        data["synonyms"] = normalize_synonyms(data["synonyms"])
    return data


class PlantRepository:
    """Repository for catalog plants."""

    def __init__(self, backend: PlantOperations) -> None:
        self._backend = backend

    def create_plant(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Persist a new plant.

        Args:
            fields: Validated column values; ``scientific_name`` is required

        Returns:
            ``{id, scientific_name, common_name, added_at}`` for the new row
        """
        row = self._backend.insert_plant(**_encode(fields))
        return dict(row)

    def update_plant(self, plant_id: int, fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Replace every writable column of a plant.

        Omitted columns are cleared, so callers send the full record.

        Returns:
            ``{id, scientific_name, common_name, updated_at}`` or None when
            *plant_id* does not exist
        """
        row = self._backend.update_plant(plant_id, **_encode(fields))
        return dict(row) if row is not None else None

    def get_plant(self, plant_id: int) -> Optional[Dict[str, Any]]:
        """Get plant by ID."""
        row = self._backend.get_plant_by_id(plant_id)
        return row_to_dict(row) if row is not None else None

    def list_plants(self) -> List[Dict[str, Any]]:
        """List all plants, most recently added first."""
        return [row_to_dict(row) for row in self._backend.get_all_plants()]

    def count(self) -> int:
        return self._backend.count_plants()

"""
Plant Record
============
Canonical, source-normalized plant entity.

Search adapters, the merge engine and the catalogue client all speak
``PlantRecord``. Trefle and Perenual results are reshaped into it so that
fields a source never provides are explicit ``None`` rather than missing.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping

from app.domain.care_guide import CareGuide

SOURCE_TREFLE = "trefle"
SOURCE_PERENUAL = "perenual"
SOURCES = (SOURCE_TREFLE, SOURCE_PERENUAL)

# Text fields reconciled by the merge engine.
TEXT_FIELDS = (
    "scientific_name",
    "common_name",
    "family",
    "family_common_name",
    "genus",
    "bibliography",
    "author",
)


@dataclass(slots=True)
class PlantRecord:
    scientific_name: str
    id: int | str | None = None
    source: str | None = None
    slug: str | None = None
    common_name: str | None = None
    family: str | None = None
    family_common_name: str | None = None
    genus: str | None = None
    image_url: str | None = None
    author: str | None = None
    bibliography: str | None = None
    year: int | None = None
    synonyms: list[str] | None = None
    trefle_id: int | None = None
    perenual_id: int | None = None
    metadata: dict[str, Any] | None = None
    notes: str | None = None
    nickname: str | None = None
    location: str | None = None
    acquired_date: str | None = None
    status: str | None = None
    added_at: str | None = None
    updated_at: str | None = None
    care_guide: CareGuide | None = field(default=None)

    def __post_init__(self) -> None:
        if not isinstance(self.scientific_name, str) or not self.scientific_name.strip():
            raise ValueError("scientific_name must be a non-empty string")
        if self.source is not None and self.source not in SOURCES:
            raise ValueError(f"Unknown source: {self.source}")
        if self.synonyms is not None:
            self.synonyms = [s for s in self.synonyms if isinstance(s, str)]

    def source_id(self, source: str) -> int | str | None:
        """Identifier of this record in *source*, if known."""
        explicit = self.trefle_id if source == SOURCE_TREFLE else self.perenual_id
        if explicit is not None:
            return explicit
        if self.source == source:
            return self.id
        return None

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "care_guide"}
        if data["synonyms"] is not None:
            data["synonyms"] = list(data["synonyms"])
        if data["metadata"] is not None:
            data["metadata"] = dict(data["metadata"])
        data["care_guide"] = self.care_guide.to_dict() if self.care_guide else None
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlantRecord":
        """Build a record from an API payload, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known and k != "care_guide"}
        care = data.get("care_guide")
        if isinstance(care, CareGuide):
            kwargs["care_guide"] = care
        elif isinstance(care, Mapping):
            kwargs["care_guide"] = CareGuide.from_dict(care)
        return cls(**kwargs)

    def copy(self) -> "PlantRecord":
        return PlantRecord.from_dict(asdict(self))

"""
Record Merge Engine
===================
Deterministic combination of two records believed to describe the same
species, one from each source.

Record A (the one the user started from) is the base. Field rules:

- text fields: take the only non-empty value; when both are set and differ,
  the longer string wins and ties keep A
- ``image_url``: B's value if set, else A's
- ``synonyms``: ordered union, duplicates removed
- ``care_guide``: B's if present, else A's
- provenance: both source ids are kept and ``metadata["merged_from"]``
  names both sources

A field is reported in ``differences`` whenever the raw inputs disagree,
regardless of which value was kept.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable

from app.domain.plant_record import SOURCE_PERENUAL, SOURCE_TREFLE, TEXT_FIELDS, PlantRecord


@dataclass
class ComparisonResult:
    original: PlantRecord
    matched: PlantRecord | None
    merged: PlantRecord
    differences: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original.to_dict(),
            "matched": self.matched.to_dict() if self.matched else None,
            "merged": self.merged.to_dict(),
            "differences": sorted(self.differences),
        }


def _care_key(record: PlantRecord) -> str:
    care = record.care_guide.to_dict() if record.care_guide else None
    return json.dumps(care, sort_keys=True)


def _union(*lists: Iterable[str] | None) -> list[str]:
    seen: dict[str, None] = {}
    for items in lists:
        for item in items or []:
            seen.setdefault(item, None)
    return list(seen)


def merge_records(a: PlantRecord, b: PlantRecord) -> ComparisonResult:
    """Merge *b* into a copy of *a*. Pure; neither input is modified."""
    merged = a.copy()
    differences: set[str] = set()

    for name in TEXT_FIELDS:
        val_a = getattr(a, name)
        val_b = getattr(b, name)

        if val_a != val_b:
            differences.add(name)

        if not val_a and val_b:
            setattr(merged, name, val_b)
        elif val_a and val_b:
            setattr(merged, name, val_b if len(str(val_b)) > len(str(val_a)) else val_a)

    if a.image_url != b.image_url:
        differences.add("image_url")
        merged.image_url = b.image_url or a.image_url

    if a.synonyms is not None or b.synonyms is not None:
        combined = _union(a.synonyms, b.synonyms)
        merged.synonyms = combined or None
        if a.synonyms != b.synonyms:
            differences.add("synonyms")

    if a.care_guide or b.care_guide:
        merged.care_guide = b.care_guide or a.care_guide
        if _care_key(a) != _care_key(b):
            differences.add("care_guide")

    merged.trefle_id = a.source_id(SOURCE_TREFLE) or b.source_id(SOURCE_TREFLE)
    merged.perenual_id = a.source_id(SOURCE_PERENUAL) or b.source_id(SOURCE_PERENUAL)
    merged.metadata = {**(a.metadata or {}), "merged_from": [a.source, b.source]}

    return ComparisonResult(original=a, matched=b, merged=merged, differences=differences)


def find_best_match(scientific_name: str, candidates: list[PlantRecord]) -> PlantRecord | None:
    """Pick the candidate most likely to be the same species.

    Exact (case-insensitive) name first, then the first candidate sharing
    the genus, then simply the first candidate.
    """
    if not candidates:
        return None

    target = scientific_name.lower()
    for candidate in candidates:
        if candidate.scientific_name.lower() == target:
            return candidate

    genus = target.split(" ")[0]
    for candidate in candidates:
        if candidate.scientific_name.lower().startswith(genus):
            return candidate

    return candidates[0]

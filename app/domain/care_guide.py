"""
Care Guide
==========
Structured care attributes parsed from Perenual's care-guide sections.

Perenual returns care information as a list of labelled free-text sections::

    [{"type": "watering", "description": "Water weekly..."},
     {"type": "sunlight", "description": "full sun, part shade"},
     {"type": "hardiness", "description": "Hardy in zones 9b to 11."}]

``extract_care_guide`` turns that into a :class:`CareGuide`. Care guides are
never stored as-is; they are folded into ``metadata["care"]`` when a plant is
saved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

_HARDINESS_MIN_RE = re.compile(r"(\d+[a-z]?)", re.IGNORECASE)
_HARDINESS_MAX_RE = re.compile(r"to (\d+[a-z]?)", re.IGNORECASE)


@dataclass(slots=True)
class HardinessRange:
    """USDA hardiness zone range, e.g. ``9b`` to ``11``."""

    min: str | None = None
    max: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {"min": self.min, "max": self.max}


@dataclass(slots=True)
class CareGuide:
    watering: str | None = None
    sunlight: list[str] | None = None
    pruning: str | None = None
    hardiness: HardinessRange = field(default_factory=HardinessRange)

    def to_dict(self) -> dict[str, Any]:
        return {
            "watering": self.watering,
            "sunlight": list(self.sunlight) if self.sunlight is not None else None,
            "pruning": self.pruning,
            "hardiness": self.hardiness.to_dict(),
        }

    def to_metadata(self) -> dict[str, str | None]:
        """Shape stored under ``metadata["care"]`` of a saved plant."""
        return {
            "water": self.watering or None,
            "light": ", ".join(self.sunlight) if self.sunlight else None,
            "pruning": self.pruning or None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "CareGuide | None":
        if not data:
            return None
        hardiness = data.get("hardiness") or {}
        sunlight = data.get("sunlight")
        return cls(
            watering=data.get("watering"),
            sunlight=list(sunlight) if sunlight is not None else None,
            pruning=data.get("pruning"),
            hardiness=HardinessRange(min=hardiness.get("min"), max=hardiness.get("max")),
        )


def _find_description(sections: list[Mapping[str, Any]], section_type: str) -> str | None:
    for section in sections:
        if section.get("type") == section_type:
            description = section.get("description")
            return description if isinstance(description, str) and description else None
    return None


def parse_hardiness(text: str | None) -> HardinessRange:
    """Pull the zone range out of free text such as ``"Zones 4a to 9"``.

    The first digit group is the minimum; the digit group right after the
    word "to" is the maximum.
    """
    if not text:
        return HardinessRange()
    min_match = _HARDINESS_MIN_RE.search(text)
    max_match = _HARDINESS_MAX_RE.search(text)
    return HardinessRange(
        min=min_match.group(0) if min_match else None,
        max=max_match.group(1) if max_match else None,
    )


def extract_care_guide(sections: Iterable[Any] | None) -> CareGuide:
    """Build a :class:`CareGuide` from Perenual care-guide sections.

    Missing sections give None fields; entries that are not mappings are
    ignored.
    """
    usable = [s for s in (sections or []) if isinstance(s, Mapping)]

    sunlight_text = _find_description(usable, "sunlight")
    sunlight = [token.strip() for token in sunlight_text.split(",")] if sunlight_text else None

    return CareGuide(
        watering=_find_description(usable, "watering"),
        sunlight=sunlight,
        pruning=_find_description(usable, "pruning"),
        hardiness=parse_hardiness(_find_description(usable, "hardiness")),
    )

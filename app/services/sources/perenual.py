"""
Perenual Client
===============

Species search and care guides from https://perenual.com.

Perenual's species list needs reshaping before it matches ``PlantRecord``:
``scientific_name`` arrives as a list, images are nested under
``default_image``, and several fields are never returned at all (those are
set to ``None`` explicitly).

Free tier accounts get an "Upgrade Plan" notice instead of data once the
daily quota is spent; that is treated as an upstream failure.
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from app.domain.care_guide import CareGuide, extract_care_guide
from app.domain.exceptions import ExternalServiceError, ValidationError
from app.domain.plant_record import SOURCE_PERENUAL, PlantRecord
from app.services.sources.base import UpstreamClient, coerce_int, coerce_str
from app.utils.validation import validate_search_query

logger = logging.getLogger(__name__)

_UPGRADE_MARKER = "Upgrade Plan"


def _check_quota(body: Any) -> None:
    if isinstance(body, dict):
        error = body.get("error") or body.get("message") or ""
        if _UPGRADE_MARKER in str(error):
            raise ExternalServiceError("Perenual quota exhausted")


class PerenualClient(UpstreamClient):
    """Perenual species-list and care-guide adapter."""

    name = "Perenual"
    credential_env = "PERENUAL_API_KEY"

    SPECIES_LIST_URL = "https://perenual.com/api/v2/species-list"
    # The care guide endpoint has no /v2 path
    CARE_GUIDE_URL = "https://perenual.com/api/species-care-guide-list"

    def search(self, query: Any) -> List[PlantRecord]:
        """Search Perenual for *query* and normalize the results."""
        key = self._require_key()
        sanitized = validate_search_query(query)
        if not sanitized:
            return []

        body = self._get_json(self.SPECIES_LIST_URL, {"key": key, "q": sanitized})
        _check_quota(body)
        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            raise ExternalServiceError("Perenual returned an unexpected payload")

        records = [r for r in (normalize_perenual_plant(item) for item in body["data"]) if r is not None]
        logger.info("Perenual search %r returned %s results", sanitized, len(records))
        return records

    def fetch_care_guide(self, species_id: int) -> Optional[CareGuide]:
        """Fetch and parse the care guide for *species_id*.

        Returns:
            CareGuide, or None when Perenual has no guide for the species
        """
        key = self._require_key()
        if isinstance(species_id, bool) or not isinstance(species_id, int) or species_id <= 0:
            raise ValidationError("species_id must be a positive integer")

        body = self._get_json(
            self.CARE_GUIDE_URL,
            {"species_id": species_id, "page": 1, "key": key},
        )
        _check_quota(body)
        if not isinstance(body, dict):
            raise ExternalServiceError("Perenual returned an unexpected care guide payload")

        entries = body.get("data")
        if not isinstance(entries, list) or not entries or not isinstance(entries[0], Mapping):
            logger.info("No care guide data found for species %s", species_id)
            return None

        return extract_care_guide(entries[0].get("section"))


def _pick_image(default_image: Any) -> Optional[str]:
    if not isinstance(default_image, Mapping):
        return None
    return coerce_str(default_image.get("regular_url")) or coerce_str(default_image.get("original_url"))


def normalize_perenual_plant(item: Any) -> Optional[PlantRecord]:
    """Map one Perenual species-list entry onto ``PlantRecord``."""
    if not isinstance(item, Mapping):
        return None

    raw_name = item.get("scientific_name")
    if isinstance(raw_name, list):
        raw_name = raw_name[0] if raw_name else None
    scientific_name = coerce_str(raw_name)
    if not scientific_name:
        logger.debug("Skipping Perenual result without scientific_name: %s", item.get("id"))
        return None

    plant_id = coerce_int(item.get("id"))
    return PlantRecord(
        id=plant_id,
        source=SOURCE_PERENUAL,
        perenual_id=plant_id,
        slug=None,
        scientific_name=scientific_name,
        common_name=coerce_str(item.get("common_name")),
        family=coerce_str(item.get("family")),
        family_common_name=None,
        genus=coerce_str(item.get("genus")),
        image_url=_pick_image(item.get("default_image")),
        year=None,
        bibliography=None,
        author=None,
        synonyms=None,
    )

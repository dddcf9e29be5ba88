"""
Trefle Client
=============

Species search against https://trefle.io. Trefle's search results already
look like ``PlantRecord`` so the mapping is close to 1:1.
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from app.domain.exceptions import ExternalServiceError
from app.domain.plant_record import SOURCE_TREFLE, PlantRecord
from app.services.sources.base import UpstreamClient, coerce_int, coerce_str
from app.utils.validation import validate_search_query

logger = logging.getLogger(__name__)


class TrefleClient(UpstreamClient):
    """Trefle plant search adapter."""

    name = "Trefle"
    credential_env = "TREFLE_API_TOKEN"

    BASE_URL = "https://trefle.io/api/v1"

    def search(self, query: Any) -> List[PlantRecord]:
        """Search Trefle for *query*.

        The query is sanitized before it is forwarded. An empty query after
        sanitization returns no results without calling Trefle.
        """
        token = self._require_key()
        sanitized = validate_search_query(query)
        if not sanitized:
            return []

        body = self._get_json(f"{self.BASE_URL}/plants/search", {"token": token, "q": sanitized})
        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            raise ExternalServiceError("Trefle returned an unexpected payload")

        records = [r for r in (normalize_trefle_plant(item) for item in body["data"]) if r is not None]
        logger.info("Trefle search %r returned %s results", sanitized, len(records))
        return records


def normalize_trefle_plant(item: Any) -> Optional[PlantRecord]:
    """Map one Trefle search hit onto ``PlantRecord`` (None if unusable)."""
    if not isinstance(item, Mapping):
        return None
    scientific_name = coerce_str(item.get("scientific_name"))
    if not scientific_name:
        logger.debug("Skipping Trefle result without scientific_name: %s", item.get("id"))
        return None

    synonyms = item.get("synonyms")
    plant_id = coerce_int(item.get("id"))
    return PlantRecord(
        id=plant_id,
        source=SOURCE_TREFLE,
        trefle_id=plant_id,
        slug=coerce_str(item.get("slug")),
        scientific_name=scientific_name,
        common_name=coerce_str(item.get("common_name")),
        family=coerce_str(item.get("family")),
        family_common_name=coerce_str(item.get("family_common_name")),
        genus=coerce_str(item.get("genus")),
        image_url=coerce_str(item.get("image_url")),
        year=coerce_int(item.get("year")),
        bibliography=coerce_str(item.get("bibliography")),
        author=coerce_str(item.get("author")),
        synonyms=[s for s in synonyms if isinstance(s, str)] if isinstance(synonyms, list) else None,
    )

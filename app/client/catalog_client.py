"""
Catalog Client
==============

Python client for the catalog HTTP API, carrying the browser-side workflow:

1. search one plant database (``search``)
2. look the chosen plant up in the other database (``find_match``), with
   Perenual matches enriched by their care guide
3. reconcile both records (``compare`` -> ``merge_records``)
4. save the result (``add_to_collection``), later edit it or attach photos

Usage::

    client = CatalogClient("http://localhost:8000", session_token=token)
    results = client.search("trefle", "monstera")
    comparison = client.compare(results[0], "perenual")
    saved = client.add_to_collection(comparison.merged)
"""
from __future__ import annotations

import logging
import mimetypes
import os
from typing import Any, Dict, List, Mapping, Optional

import requests

from app.domain.care_guide import CareGuide
from app.domain.exceptions import ExternalServiceError
from app.domain.merge import ComparisonResult, find_best_match, merge_records
from app.domain.plant_record import SOURCE_PERENUAL, SOURCE_TREFLE, SOURCES, PlantRecord

logger = logging.getLogger(__name__)

_SEARCH_PATHS = {
    SOURCE_TREFLE: "/api/trefle",
    SOURCE_PERENUAL: "/api/perenual",
}


class CatalogAPIError(ExternalServiceError):
    """Non-2xx answer from the catalog API."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message, detail={"status": status_code})
        self.status_code = status_code


class CatalogClient:
    """HTTP client for the plant catalog service."""

    def __init__(
        self,
        base_url: str,
        session_token: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session_token = session_token
        self._session = session or requests.Session()
        self._timeout = timeout

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def _headers(self) -> Dict[str, str]:
        if not self.session_token:
            return {}
        return {"Authorization": f"Bearer {self.session_token}"}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                headers=self._headers(),
                timeout=self._timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise ExternalServiceError(f"{method} {path} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            message = body.get("error") if isinstance(body, dict) else None
            raise CatalogAPIError(message or f"HTTP {response.status_code}", response.status_code)
        return body

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------ #
    # Search and enrichment
    # ------------------------------------------------------------------ #

    def search(self, source: str, query: str) -> List[PlantRecord]:
        """Search *source* (``"trefle"`` or ``"perenual"``) by name."""
        if source not in _SEARCH_PATHS:
            raise ValueError(f"Unknown source: {source}")

        body = self._request("GET", _SEARCH_PATHS[source], params={"q": query})
        records: List[PlantRecord] = []
        for item in (body or {}).get("data") or []:
            try:
                records.append(PlantRecord.from_dict(item))
            except (TypeError, ValueError) as exc:
                logger.debug("Skipping unusable %s result: %s", source, exc)
        return records

    def fetch_care_guide(self, species_id: int | str) -> Optional[CareGuide]:
        """Perenual care guide for *species_id*, or None.

        Rate limiting and errors are not fatal: the comparison simply goes
        ahead without care data.
        """
        try:
            body = self._request("GET", "/api/perenual-care", params={"species_id": species_id})
        except CatalogAPIError as exc:
            if exc.status_code == 429:
                logger.warning("Rate limit exceeded for Perenual API - care guide unavailable")
            else:
                logger.warning("Perenual care guide error: %s", exc)
            return None
        except ExternalServiceError as exc:
            logger.error("Failed to fetch care guide: %s", exc)
            return None

        data = (body or {}).get("data")
        if not data:
            logger.info("No care guide data found for species: %s", species_id)
            return None
        return CareGuide.from_dict(data)

    def find_match(self, record: PlantRecord, target_source: str) -> Optional[PlantRecord]:
        """Find the best counterpart of *record* in *target_source*."""
        candidates = self.search(target_source, record.scientific_name)
        matched = find_best_match(record.scientific_name, candidates)

        if matched is not None and target_source == SOURCE_PERENUAL:
            species_id = matched.source_id(SOURCE_PERENUAL)
            if species_id is not None:
                guide = self.fetch_care_guide(species_id)
                if guide is not None:
                    matched.care_guide = guide
        return matched

    def compare(self, record: PlantRecord, target_source: str) -> ComparisonResult:
        """Look *record* up in *target_source* and merge the two.

        When nothing matches, ``matched`` is None and ``merged`` is a copy of
        *record*.
        """
        matched = self.find_match(record, target_source)
        if matched is None:
            logger.info("No matching plant found in %s for %s", target_source, record.scientific_name)
            return ComparisonResult(original=record, matched=None, merged=record.copy())
        return merge_records(record, matched)

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    @staticmethod
    def build_save_payload(record: PlantRecord) -> Dict[str, Any]:
        """Request body for ``POST /api/plants`` built from a search or merged record."""
        payload: Dict[str, Any] = {}
        for source in SOURCES:
            source_id = record.source_id(source)
            if source_id:
                payload[f"{source}_id"] = source_id

        payload.update(
            slug=record.slug,
            scientific_name=record.scientific_name,
            common_name=record.common_name,
            family=record.family,
            family_common_name=record.family_common_name,
            genus=record.genus,
            image_url=record.image_url,
            year=record.year,
            bibliography=record.bibliography,
            author=record.author,
            synonyms=record.synonyms or [],
        )

        metadata = dict(record.metadata) if record.metadata else {"source": record.source}
        if record.care_guide is not None:
            metadata["care"] = record.care_guide.to_metadata()
        payload["metadata"] = metadata
        return payload

    def add_to_collection(self, record: PlantRecord) -> Dict[str, Any]:
        """Save *record*; returns ``{id, scientific_name, common_name, added_at}``."""
        payload = self.build_save_payload(record)
        logger.debug("Adding to collection: %s", payload["scientific_name"])
        body = self._request("POST", "/api/plants", json=payload)
        return body["plant"]

    def update_plant(self, plant_id: int, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Replace a saved plant; *fields* must be the full record."""
        body = self._request("PUT", "/api/plants/update", json={**fields, "id": plant_id})
        return body["plant"]

    def get_plant(self, plant_id: int) -> Optional[Dict[str, Any]]:
        try:
            body = self._request("GET", "/api/plants/get", params={"id": plant_id})
        except CatalogAPIError as exc:
            if exc.status_code == 404:
                return None
            raise
        return body["plant"]

    def list_plants(self) -> List[Dict[str, Any]]:
        body = self._request("GET", "/api/plants/list")
        return body["plants"]

    def upload_photo(self, plant_id: int, path: str, content_type: Optional[str] = None) -> Dict[str, Any]:
        """Upload an image file for *plant_id*.

        Returns:
            ``{success, imageUrl, blobUrl, blobKey}``
        """
        content_type = content_type or mimetypes.guess_type(path)[0] or "application/octet-stream"
        with open(path, "rb") as fh:
            return self._request(
                "POST",
                "/api/plants/upload-photo",
                data={"plantId": str(plant_id)},
                files={"photo": (os.path.basename(path), fh, content_type)},
            )

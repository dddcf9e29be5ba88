"""
Plant Source Proxies
====================

Search proxies for the Trefle and Perenual plant databases plus Perenual's
care guides. API keys stay server-side; results come back normalized to the
catalog record shape.

- ``GET /api/trefle?q=``
- ``GET /api/perenual?q=``
- ``GET /api/perenual-care?species_id=``
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, request

from app.blueprints.api._common import (
    fail as _fail,
    get_perenual as _perenual,
    get_trefle as _trefle,
    success as _success,
)
from app.middleware.rate_limiting import rate_limited
from app.utils.http import safe_route
from app.utils.validation import validate_id

logger = logging.getLogger("sources_api")

sources_api = Blueprint("sources_api", __name__)


@sources_api.get("/trefle")
@safe_route("Failed to search Trefle")
@rate_limited(by="search")
def search_trefle() -> Response:
    """Search Trefle by ``?q=``"""
    records = _trefle().search(request.args.get("q", ""))
    return _success({"data": [record.to_dict() for record in records]})


@sources_api.get("/perenual")
@safe_route("Failed to search Perenual")
@rate_limited(by="search")
def search_perenual() -> Response:
    """Search Perenual by ``?q=``"""
    records = _perenual().search(request.args.get("q", ""))
    return _success({"data": [record.to_dict() for record in records]})


@sources_api.get("/perenual-care")
@safe_route("Failed to fetch care guide")
@rate_limited(by="search")
def perenual_care() -> Response:
    """Care guide for a Perenual species by ``?species_id=``"""
    species_id = validate_id(request.args.get("species_id"))
    if species_id is None:
        return _fail("Invalid species ID", 400)

    guide = _perenual().fetch_care_guide(species_id)
    return _success({"data": guide.to_dict() if guide else None})

"""
Photo Serving
=============

``GET /api/photos/<key>`` streams a stored photo back with a year-long
immutable cache header; keys embed a timestamp so they never change content.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response

from app.blueprints.api._common import get_photo_store as _photo_store
from app.domain.exceptions import ValidationError
from app.utils.http import error_response, safe_route

logger = logging.getLogger("photos_api")

photos_api = Blueprint("photos_api", __name__)

CACHE_CONTROL = "public, max-age=31536000, immutable"


@photos_api.get("/<path:key>")
@safe_route("Error retrieving photo")
def serve_photo(key: str) -> Response:
    """Serve a stored photo by key (the last path segment)"""
    key = key.rsplit("/", 1)[-1]
    try:
        blob = _photo_store().load(key)
    except ValidationError:
        return error_response("Photo not found", 404)

    if blob is None:
        return error_response("Photo not found", 404)

    response = Response(blob.data, status=200, mimetype=blob.content_type)
    response.headers["Cache-Control"] = CACHE_CONTROL
    return response

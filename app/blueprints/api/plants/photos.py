"""
Plant Photos
============

``POST /api/plants/upload-photo`` accepts a multipart form with a ``photo``
file part and a ``plantId`` field, stores the image and returns its URL.
The row is not touched here; the client saves the URL with its next update.
"""

from __future__ import annotations

import logging
import re

from flask import Response, current_app, request

from app.blueprints.api._common import (
    fail as _fail,
    get_photo_store as _photo_store,
    success as _success,
)
from app.middleware.rate_limiting import rate_limited
from app.security.auth import api_login_required, current_user_id
from app.utils.http import safe_route
from app.utils.time import epoch_ms
from app.utils.validation import validate_id

from . import plants_api

logger = logging.getLogger("plants_api.photos")

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"})
DEFAULT_EXTENSION = "jpg"
_EXT_RE = re.compile(r"^[A-Za-z0-9]{1,10}$")


def photo_key(plant_id: int, filename: str | None, timestamp_ms: int) -> str:
    """``plant-<id>-<epoch ms>.<ext>``; the extension comes from *filename*."""
    ext = DEFAULT_EXTENSION
    if filename and "." in filename:
        candidate = filename.rsplit(".", 1)[1]
        if _EXT_RE.match(candidate):
            ext = candidate.lower()
    return f"plant-{plant_id}-{timestamp_ms}.{ext}"


@plants_api.post("/upload-photo")
@safe_route("Failed to upload photo")
@api_login_required
@rate_limited(by="user")
def upload_photo() -> Response:
    """Upload a plant photo"""
    file = request.files.get("photo")
    if file is None or not file.filename:
        return _fail("No file provided", 400)

    plant_id = validate_id(request.form.get("plantId"))
    if plant_id is None:
        return _fail("Invalid plant ID", 400)

    content_type = (file.mimetype or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        return _fail("Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed.", 400)

    max_bytes = current_app.config["CONTAINER"].config.photo_max_bytes
    data = file.read(max_bytes + 1)
    if len(data) > max_bytes:
        return _fail(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.", 400)
    if not data:
        return _fail("No file provided", 400)

    key = photo_key(plant_id, file.filename, epoch_ms())
    stored = _photo_store().save(
        key,
        data,
        content_type=content_type,
        metadata={"plantId": plant_id, "originalName": file.filename},
    )
    logger.info("User %s uploaded photo %s for plant %s", current_user_id(), key, plant_id)

    return _success(
        {
            "success": True,
            "imageUrl": stored.url,
            "blobUrl": stored.url,
            "blobKey": stored.key,
        }
    )

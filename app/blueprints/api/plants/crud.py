"""
Plant CRUD Operations
=====================

Endpoints for creating, reading, updating and listing catalog plants.

Writes are authenticated and limited per user; reads are public and limited
per client address.
"""

from __future__ import annotations

import logging

from flask import Response, request
from pydantic import ValidationError

from app.blueprints.api._common import (
    fail as _fail,
    get_json as _get_json,
    get_plant_repo as _plant_repo,
    success as _success,
)
from app.domain.exceptions import NotFoundError
from app.middleware.rate_limiting import rate_limited
from app.schemas import PlantPayload, UpdatePlantRequest, first_error_message
from app.security.auth import api_login_required, current_user_id
from app.utils.http import safe_route
from app.utils.validation import validate_id, validate_required

from . import plants_api

logger = logging.getLogger("plants_api.crud")


# ============================================================================
# WRITES
# ============================================================================


@plants_api.post("")
@safe_route("Failed to add plant")
@api_login_required
@rate_limited(by="user")
def add_plant() -> Response:
    """Add a plant to the catalog"""
    raw = _get_json()
    if raw is None:
        return _fail("Invalid JSON body", 400)

    required = validate_required(raw, ["scientific_name"])
    if not required.valid:
        return _fail(f"{', '.join(required.missing)} is required", 400)

    try:
        body = PlantPayload(**raw)
    except ValidationError as ve:
        return _fail(first_error_message(ve), 400)

    plant = _plant_repo().create_plant(body.to_columns())
    logger.info("User %s added plant %s (%s)", current_user_id(), plant["id"], body.scientific_name)
    return _success({"success": True, "plant": plant}, 201)


@plants_api.route("/update", methods=["PUT", "PATCH"])
@safe_route("Failed to update plant")
@api_login_required
@rate_limited(by="user")
def update_plant() -> Response:
    """Replace a catalog plant; omitted fields are cleared"""
    raw = _get_json()
    if raw is None:
        return _fail("Invalid JSON body", 400)

    if not validate_required(raw, ["id"]).valid:
        return _fail("Plant ID required", 400)
    if not validate_required(raw, ["scientific_name"]).valid:
        return _fail("scientific_name is required", 400)

    try:
        body = UpdatePlantRequest(**raw)
    except ValidationError as ve:
        return _fail(first_error_message(ve), 400)

    plant = _plant_repo().update_plant(body.id, body.to_columns())
    if plant is None:
        raise NotFoundError("Plant not found")

    logger.info("User %s updated plant %s", current_user_id(), body.id)
    return _success({"success": True, "plant": plant})


# ============================================================================
# READS
# ============================================================================


@plants_api.get("/get")
@safe_route("Failed to fetch plant")
@rate_limited(by="ip")
def get_plant() -> Response:
    """Get a single plant by ``?id=``"""
    plant_id = validate_id(request.args.get("id"))
    if plant_id is None:
        return _fail("Invalid plant ID", 400)

    plant = _plant_repo().get_plant(plant_id)
    if plant is None:
        raise NotFoundError("Plant not found")

    return _success({"plant": plant})


@plants_api.get("/list")
@safe_route("Failed to fetch plants")
@rate_limited(by="ip")
def list_plants() -> Response:
    """List every plant, newest first"""
    plants = _plant_repo().list_plants()
    logger.debug("Listing %s plants", len(plants))
    return _success({"plants": plants})

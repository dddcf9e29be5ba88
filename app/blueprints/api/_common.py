"""
Blueprint Common Utilities
==========================

Shared helper functions for all API blueprints.
Import these instead of duplicating helper code in each blueprint.

Usage:
    from app.blueprints.api._common import (
        get_container, get_json, success, fail,
        get_plant_repo, get_photo_store, ...
    )
"""
from __future__ import annotations

import logging

from flask import current_app, request

from app.utils.http import error_response, success_response

logger = logging.getLogger("api._common")

# ============================================================================
# CONTAINER ACCESS
# ============================================================================


def get_container():
    """
    Get the service container from Flask app config.

    Returns:
        ServiceContainer: The application service container

    Raises:
        RuntimeError: If container is not configured
    """
    container = current_app.config.get("CONTAINER")
    if not container:
        raise RuntimeError("ServiceContainer not found in app config")
    return container


def get_plant_repo():
    return get_container().plant_repo


def get_trefle():
    return get_container().trefle


def get_perenual():
    return get_container().perenual


def get_photo_store():
    return get_container().photo_store


# ============================================================================
# REQUEST HELPERS
# ============================================================================


def get_json() -> dict | None:
    """
    Get JSON request body.

    Returns:
        dict: Parsed JSON object, or None when the body is missing, malformed
        or not an object
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return None
    return body


# ============================================================================
# RESPONSE HELPERS
# ============================================================================


def success(data: dict | list | None = None, status: int = 200):
    """Standard success response wrapper (the payload is the body as-is)."""
    return success_response(data, status)


def fail(message: str, status: int = 400):
    """Standard error response wrapper: ``{"error": message}``."""
    return error_response(message, status)

"""
Schemas Module
==============

This module provides Pydantic models for request validation.
Schemas ensure data integrity at the API boundary.
"""

from app.schemas.plants import PlantPayload, UpdatePlantRequest, first_error_message

__all__ = [
    "PlantPayload",
    "UpdatePlantRequest",
    "first_error_message",
]

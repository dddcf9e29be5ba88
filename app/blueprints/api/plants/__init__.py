"""
Plants API Module
=================

Personal plant catalog, mounted at ``/api/plants``:
- crud.py: create, full update, get by id, list
- photos.py: photo upload (serving lives in ``photos_api``)
"""

from flask import Blueprint

# Create blueprint here to avoid circular imports
plants_api = Blueprint("plants_api", __name__)

# Import submodules to register routes (must be after blueprint creation)
from . import crud, photos  # noqa: E402

__all__ = ["plants_api"]

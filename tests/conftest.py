"""
Shared test fixtures for the plant catalog test suite.

Provides:
- In-memory SQLite database with all tables created
- Repository and store instances wired to the test database
- Mocked Trefle / Perenual clients (no network)
- A Flask app and client built through ``create_app`` with those fakes
- Session-token helpers signed with the test secret

Usage:
    def test_example(client, auth_headers):
        response = client.post("/api/plants", json={...}, headers=auth_headers)
        assert response.status_code == 201
"""

from __future__ import annotations

import logging
import time
from typing import Any
from unittest.mock import MagicMock

import jwt
import pytest

from app import create_app
from app.services.sources import PerenualClient, TrefleClient
from infrastructure.database.repositories.plants import PlantRepository
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
from infrastructure.storage.kv_store import InMemoryKeyValueStore
from infrastructure.storage.photo_store import FilesystemPhotoStore

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("infrastructure").setLevel(logging.WARNING)
logging.getLogger("app").setLevel(logging.WARNING)

TEST_AUTH_SECRET = "test-auth-secret-0123456789abcdef0123456789"
TEST_BASE_URL = "https://plants.example"


# ========================== Database Fixtures ==============================


@pytest.fixture()
def db_handler():
    """In-memory SQLite database with all tables created.

    Each test gets a fresh database: no cross-test contamination.
    """
    handler = SQLiteDatabaseHandler(":memory:")
    handler.create_tables()
    yield handler
    handler.close()


@pytest.fixture()
def plant_repo(db_handler):
    """PlantRepository backed by the in-memory DB."""
    return PlantRepository(db_handler)


@pytest.fixture()
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture()
def photo_store(tmp_path):
    return FilesystemPhotoStore(str(tmp_path / "photos"), public_base_url=TEST_BASE_URL)


# ========================== Upstream Fakes =================================


@pytest.fixture()
def trefle_client():
    client = MagicMock(spec=TrefleClient)
    client.search.return_value = []
    return client


@pytest.fixture()
def perenual_client():
    client = MagicMock(spec=PerenualClient)
    client.search.return_value = []
    client.fetch_care_guide.return_value = None
    return client


# ========================== Application ====================================


@pytest.fixture()
def config_overrides() -> dict[str, Any]:
    return {
        "database_url": ":memory:",
        "auth_secret_key": TEST_AUTH_SECRET,
        "public_base_url": TEST_BASE_URL,
        "log_file": "",
        "environment": "testing",
    }


@pytest.fixture()
def app(config_overrides, db_handler, plant_repo, kv_store, trefle_client, perenual_client, photo_store):
    flask_app = create_app(
        config_overrides,
        database=db_handler,
        plant_repo=plant_repo,
        kv_store=kv_store,
        trefle=trefle_client,
        perenual=perenual_client,
        photo_store=photo_store,
    )
    flask_app.config["TESTING"] = True
    yield flask_app


@pytest.fixture()
def client(app):
    return app.test_client(use_cookies=False)


@pytest.fixture()
def limiter(app):
    return app.config["CONTAINER"].rate_limiter


# ========================== Auth Helpers ===================================


def _make_token(sub: str = "user_123", *, secret: str = TEST_AUTH_SECRET, expires_in: int = 3600, **claims: Any) -> str:
    now = int(time.time())
    payload = {"sub": sub, "iat": now, "exp": now + expires_in, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture()
def make_token():
    """Factory for signed session tokens: ``make_token("user_1", expires_in=-10)``."""
    return _make_token


@pytest.fixture()
def auth_headers():
    return {"Authorization": f"Bearer {_make_token()}"}


# ========================== Data Helpers ===================================


@pytest.fixture()
def sample_plant() -> dict[str, Any]:
    return {
        "scientific_name": "Monstera deliciosa",
        "common_name": "Swiss cheese plant",
        "family": "Araceae",
        "genus": "Monstera",
        "year": 1849,
        "synonyms": ["Philodendron pertusum"],
        "trefle_id": 123,
        "metadata": {"source": "trefle"},
    }

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from app.config import AppConfig
from app.middleware.rate_limiting import RateLimitConfig, RateLimiter
from app.security.auth import TokenVerifier
from app.services.sources import PerenualClient, TrefleClient
from infrastructure.database.repositories.plants import PlantRepository
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler
from infrastructure.storage.kv_store import InMemoryKeyValueStore, KeyValueStore, SQLiteKeyValueStore
from infrastructure.storage.photo_store import CloudinaryPhotoStore, FilesystemPhotoStore, PhotoStore

logger = logging.getLogger(__name__)


def _build_photo_store(config: AppConfig) -> PhotoStore:
    if config.photo_storage == "cloudinary":
        return CloudinaryPhotoStore(
            config.cloudinary_cloud_name,
            config.cloudinary_api_key,
            config.cloudinary_api_secret,
            folder=config.cloudinary_folder,
            timeout=config.upstream_timeout_seconds,
        )
    return FilesystemPhotoStore(config.photo_storage_path, public_base_url=config.public_base_url)


def _build_kv_store(config: AppConfig) -> KeyValueStore:
    path = config.kv_store_path
    # Per-thread connections would each see a different in-memory database
    if path == ":memory:":
        return InMemoryKeyValueStore()
    return SQLiteKeyValueStore(path, table="RateLimits")


@dataclass
class ServiceContainer:
    """Aggregate and manage core backend services."""

    config: AppConfig
    database: SQLiteDatabaseHandler
    plant_repo: PlantRepository
    kv_store: KeyValueStore
    rate_limiter: RateLimiter
    trefle: TrefleClient
    perenual: PerenualClient
    photo_store: PhotoStore
    token_verifier: Optional[TokenVerifier] = field(default=None)

    @classmethod
    def build(cls, config: AppConfig, **overrides: Any) -> "ServiceContainer":
        """Construct the service container with all dependencies.

        Args:
            config: Application configuration
            **overrides: Pre-built components (tests inject fakes this way)
        """
        logger.info("Building ServiceContainer...")
        components: dict[str, Any] = dict(overrides)

        if "database" not in components:
            database = SQLiteDatabaseHandler(config.database_path)
            database.create_tables()
            components["database"] = database
        if "plant_repo" not in components:
            components["plant_repo"] = PlantRepository(components["database"])
        if "kv_store" not in components:
            components["kv_store"] = _build_kv_store(config)
        if "rate_limiter" not in components:
            components["rate_limiter"] = RateLimiter(
                components["kv_store"],
                RateLimitConfig(
                    enabled=config.rate_limit_enabled,
                    window_ms=config.rate_limit_window_ms,
                    ip_limit=config.rate_limit_ip,
                    search_limit=config.rate_limit_search,
                    user_limit=config.rate_limit_user,
                ),
            )
        if "trefle" not in components:
            components["trefle"] = TrefleClient(config.trefle_api_token, timeout=config.upstream_timeout_seconds)
        if "perenual" not in components:
            components["perenual"] = PerenualClient(config.perenual_api_key, timeout=config.upstream_timeout_seconds)
        if "photo_store" not in components:
            components["photo_store"] = _build_photo_store(config)

        container = cls(config=config, **components)
        logger.info("ServiceContainer built successfully.")
        return container

    def get_token_verifier(self) -> TokenVerifier:
        """Session-token verifier, created on first use.

        Raises:
            ConfigurationError: AUTH_SECRET_KEY is not set
        """
        if self.token_verifier is None:
            self.token_verifier = TokenVerifier(
                self.config.auth_secret_key,
                algorithms=self.config.auth_algorithms,
                issuer=self.config.auth_issuer,
            )
        return self.token_verifier

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        for name in ("trefle", "perenual", "photo_store", "kv_store"):
            closer = getattr(getattr(self, name), "close", None)
            if closer is None:
                continue
            try:
                closer()
            except Exception as e:
                logger.warning("Failed to close %s: %s", name, e)
        self.database.close()
        logger.info("ServiceContainer shutdown complete.")

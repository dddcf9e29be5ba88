"""
Configuration for Extra Ephemera
================================
Runtime settings loaded from environment variables, rendered into Flask
config by ``as_flask_config``. Sets up the logging configuration as well.

Credentials for Trefle, Perenual, the session-token verifier and Cloudinary
are optional here; features that need them fail with a configuration error
on first use.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Optional

from app.domain.exceptions import ConfigurationError


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if not value:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip())


def parse_database_url(url: Optional[str]) -> str:
    """Turn ``DATABASE_URL`` into a filesystem path for sqlite3.

    Accepts a bare path, ``:memory:`` or a ``sqlite:///`` URL.
    """
    if not url or not url.strip():
        raise ConfigurationError("DATABASE_URL is not configured")
    url = url.strip()
    if url.startswith("sqlite:///"):
        path = url[len("sqlite:///"):]
        return path or ":memory:"
    if url.startswith("sqlite://"):
        return ":memory:"
    if "://" in url:
        raise ConfigurationError(f"Unsupported DATABASE_URL scheme: {url.split('://', 1)[0]}")
    return url


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("EPHEMERA_ENV", "development"))
    secret_key: str = field(default_factory=lambda: os.getenv("EPHEMERA_SECRET_KEY", "EphemeraDevSecretKey"))
    debug: bool = field(default_factory=lambda: _env_bool("EPHEMERA_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("EPHEMERA_LOG_LEVEL", "INFO"))
    log_file: str = field(default_factory=lambda: os.getenv("EPHEMERA_LOG_FILE", "logs/ephemera.log"))

    database_url: Optional[str] = field(default_factory=lambda: os.getenv("DATABASE_URL"))
    rate_limit_store_path: Optional[str] = field(default_factory=lambda: os.getenv("RATE_LIMIT_STORE_PATH"))

    # External plant databases
    trefle_api_token: Optional[str] = field(default_factory=lambda: os.getenv("TREFLE_API_TOKEN"))
    perenual_api_key: Optional[str] = field(default_factory=lambda: os.getenv("PERENUAL_API_KEY"))
    upstream_timeout_seconds: float = field(default_factory=lambda: _env_float("UPSTREAM_TIMEOUT_SECONDS", 10.0))

    # Session token verification
    auth_secret_key: Optional[str] = field(default_factory=lambda: os.getenv("AUTH_SECRET_KEY"))
    auth_algorithms: tuple[str, ...] = field(default_factory=lambda: _env_list("AUTH_ALGORITHMS", ("HS256",)))
    auth_issuer: Optional[str] = field(default_factory=lambda: os.getenv("AUTH_ISSUER"))
    auth_session_cookie: str = field(default_factory=lambda: os.getenv("AUTH_SESSION_COOKIE", "__session"))

    # Rate limiting (requests per window)
    rate_limit_enabled: bool = field(default_factory=lambda: _env_bool("EPHEMERA_RATE_LIMIT_ENABLED", True))
    rate_limit_window_ms: int = field(default_factory=lambda: _env_int("EPHEMERA_RATE_LIMIT_WINDOW_MS", 60_000))
    rate_limit_ip: int = field(default_factory=lambda: _env_int("EPHEMERA_RATE_LIMIT_IP", 60))
    rate_limit_search: int = field(default_factory=lambda: _env_int("EPHEMERA_RATE_LIMIT_SEARCH", 30))
    rate_limit_user: int = field(default_factory=lambda: _env_int("EPHEMERA_RATE_LIMIT_USER", 10))

    # Photo storage
    photo_storage: str = field(default_factory=lambda: os.getenv("PHOTO_STORAGE", "filesystem"))
    photo_storage_path: str = field(default_factory=lambda: os.getenv("PHOTO_STORAGE_PATH", "var/photos"))
    public_base_url: str = field(default_factory=lambda: os.getenv("PUBLIC_BASE_URL", "http://localhost:8000"))
    photo_max_bytes: int = field(default_factory=lambda: _env_int("EPHEMERA_PHOTO_MAX_BYTES", 5 * 1024 * 1024))
    cloudinary_cloud_name: Optional[str] = field(default_factory=lambda: os.getenv("CLOUDINARY_CLOUD_NAME"))
    cloudinary_api_key: Optional[str] = field(default_factory=lambda: os.getenv("CLOUDINARY_API_KEY"))
    cloudinary_api_secret: Optional[str] = field(default_factory=lambda: os.getenv("CLOUDINARY_API_SECRET"))
    cloudinary_folder: Optional[str] = field(default_factory=lambda: os.getenv("CLOUDINARY_FOLDER"))

    # Default insecure secret key - used only for detection
    _DEFAULT_SECRET_KEY: str = field(default="EphemeraDevSecretKey", init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        # SECURITY: Fail fast if using default secret key in production
        if self.environment == "production" and self.secret_key == self._DEFAULT_SECRET_KEY:
            raise RuntimeError(
                "SECURITY ERROR: Cannot use default secret key in production!\n"
                "Set EPHEMERA_SECRET_KEY environment variable to a secure random value.\n"
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )
        if self.photo_storage not in {"filesystem", "cloudinary"}:
            raise ValueError(f"PHOTO_STORAGE must be 'filesystem' or 'cloudinary', got {self.photo_storage!r}")

    @property
    def database_path(self) -> str:
        return parse_database_url(self.database_url)

    @property
    def kv_store_path(self) -> str:
        return self.rate_limit_store_path or self.database_path

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for Flask application."""
        return {
            "ENV": self.environment,
            "SECRET_KEY": self.secret_key,
            "DEBUG": self.debug,
            "DATABASE_PATH": self.database_path,
            "JSON_SORT_KEYS": False,
            # Multipart overhead on top of the photo limit
            "MAX_CONTENT_LENGTH": self.photo_max_bytes + 1024 * 1024,
        }


def setup_logging(debug: bool = False, level: Optional[str] = None, log_file: Optional[str] = "logs/ephemera.log") -> None:
    """Setup logging configuration."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = logging.getLevelName((level or "INFO").upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    # Root logger
    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid adding duplicates when create_app is called multiple times
    has_console = any(getattr(h, "name", "") == "ephemera_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "ephemera_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "ephemera_console"
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if log_file and not has_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "ephemera_file"
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    for handler in root.handlers:
        if getattr(handler, "name", "") in {"ephemera_console", "ephemera_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    if _env_bool("EPHEMERA_SILENCE_WERKZEUG", True):
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
    # Full request URLs carry API keys in the query string
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def load_config(overrides: Optional[dict[str, Any]] = None) -> AppConfig:
    """Helper for callers to load and validate configuration.

    Keys of *overrides* are ``AppConfig`` attribute names (case-insensitive).
    """
    config = AppConfig()
    for key, value in (overrides or {}).items():
        name = key.lower()
        if not hasattr(config, name):
            raise ValueError(f"Unknown configuration key: {key}")
        setattr(config, name, value)
    if overrides:
        config.__post_init__()
    # Surface a missing DATABASE_URL at startup
    parse_database_url(config.database_url)
    return config

import logging

import pytest

from app.config import AppConfig, load_config, parse_database_url, setup_logging
from app.domain.exceptions import ConfigurationError


@pytest.mark.parametrize(
    "url, expected",
    [
        ("sqlite:///database/ephemera.db", "database/ephemera.db"),
        ("sqlite:////var/lib/ephemera.db", "/var/lib/ephemera.db"),
        ("sqlite://", ":memory:"),
        (":memory:", ":memory:"),
        ("data/plants.db", "data/plants.db"),
    ],
)
def test_parse_database_url(url, expected):
    assert parse_database_url(url) == expected


@pytest.mark.parametrize("url", [None, "", "   "])
def test_missing_database_url(url):
    with pytest.raises(ConfigurationError, match="DATABASE_URL"):
        parse_database_url(url)


def test_unsupported_scheme():
    with pytest.raises(ConfigurationError, match="postgresql"):
        parse_database_url("postgresql://db.example/plants")


def test_load_config_reads_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/plants.db")
    monkeypatch.setenv("EPHEMERA_RATE_LIMIT_USER", "3")
    monkeypatch.setenv("AUTH_ALGORITHMS", "HS256, HS512")
    monkeypatch.setenv("EPHEMERA_RATE_LIMIT_ENABLED", "off")

    config = load_config()

    assert config.database_path == "tmp/plants.db"
    assert config.kv_store_path == "tmp/plants.db"
    assert config.rate_limit_user == 3
    assert config.auth_algorithms == ("HS256", "HS512")
    assert config.rate_limit_enabled is False


def test_load_config_fails_without_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ConfigurationError):
        load_config()


def test_overrides_are_case_insensitive_and_checked(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    config = load_config({"DATABASE_URL": ":memory:", "rate_limit_store_path": "var/limits.db"})
    assert config.database_path == ":memory:"
    assert config.kv_store_path == "var/limits.db"

    with pytest.raises(ValueError, match="Unknown configuration key"):
        load_config({"database_url": ":memory:", "no_such_setting": 1})


def test_overrides_are_validated(monkeypatch):
    monkeypatch.delenv("EPHEMERA_SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError, match="default secret key"):
        load_config({"database_url": ":memory:", "environment": "production"})
    with pytest.raises(ValueError, match="PHOTO_STORAGE"):
        load_config({"database_url": ":memory:", "photo_storage": "s3"})


def test_bad_integer_env(monkeypatch):
    monkeypatch.setenv("EPHEMERA_RATE_LIMIT_IP", "lots")
    with pytest.raises(ValueError, match="EPHEMERA_RATE_LIMIT_IP"):
        AppConfig()


def test_default_secret_rejected_in_production():
    with pytest.raises(RuntimeError, match="default secret key"):
        AppConfig(environment="production", secret_key="EphemeraDevSecretKey")


def test_unknown_photo_storage_rejected():
    with pytest.raises(ValueError, match="PHOTO_STORAGE"):
        AppConfig(photo_storage="s3")


def test_flask_config_allows_multipart_overhead():
    config = AppConfig(database_url=":memory:", photo_max_bytes=1000)
    flask_config = config.as_flask_config()
    assert flask_config["MAX_CONTENT_LENGTH"] == 1000 + 1024 * 1024
    assert flask_config["DATABASE_PATH"] == ":memory:"


def test_setup_logging_is_idempotent(tmp_path):
    log_file = str(tmp_path / "logs" / "ephemera.log")
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging(level="warning", log_file=log_file)
        setup_logging(level="warning", log_file=log_file)

        names = [getattr(h, "name", "") for h in root.handlers]
        assert names.count("ephemera_file") == 1
        assert names.count("ephemera_console") <= 1
        assert root.level == logging.WARNING
        assert (tmp_path / "logs").is_dir()
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)

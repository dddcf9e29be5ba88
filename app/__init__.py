from __future__ import annotations

import atexit
import contextlib
import logging
import signal
import threading
from typing import Any

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from app.blueprints.api.photos import photos_api
from app.blueprints.api.plants import plants_api
from app.blueprints.api.sources import sources_api
from app.config import load_config, setup_logging
from app.middleware.security_headers import init_security_headers


def create_app(
    config_overrides: dict[str, Any] | None = None,
    *,
    container: Any = None,
    install_signal_handlers: bool = False,
    **components: Any,
) -> Flask:
    """Application factory.

    Args:
        config_overrides: ``AppConfig`` attribute overrides (keys are
            case-insensitive)
        container: A fully built ``ServiceContainer`` to use as-is
        install_signal_handlers: Register SIGINT/SIGTERM shutdown handlers
        **components: Pre-built container components (``plant_repo``,
            ``trefle``, ``photo_store`` ...) passed to ``ServiceContainer.build``
    """
    config = container.config if container is not None else load_config(config_overrides)

    # Configure logging early so container startup is visible.
    setup_logging(debug=config.debug, level=config.log_level, log_file=config.log_file)

    flask_app = Flask(__name__)
    flask_app.config.update(config.as_flask_config())

    if container is None:
        from app.services.container import ServiceContainer

        container = ServiceContainer.build(config, **components)
    flask_app.config["CONTAINER"] = container
    container.database.init_app(flask_app)

    # ── Graceful shutdown handlers ──────────────────────────────────
    _shutdown_lock = threading.Lock()
    _shutdown_done = False

    def _graceful_shutdown(reason: str = "unknown") -> None:
        nonlocal _shutdown_done
        with _shutdown_lock:
            if _shutdown_done:
                return
            _shutdown_done = True
        logging.info("Graceful shutdown initiated (%s)", reason)
        try:
            container.shutdown()
        except Exception as exc:
            logging.warning("Error during graceful shutdown: %s", exc)

    def _signal_handler(signum: int, _frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logging.info("Received %s, shutting down", sig_name)
        _graceful_shutdown(sig_name)
        raise SystemExit(0)

    flask_app.extensions["ephemera_shutdown"] = _graceful_shutdown

    init_security_headers(flask_app, enable_hsts=config.environment == "production")

    if install_signal_handlers:
        atexit.register(_graceful_shutdown, "atexit")
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(OSError, ValueError):
                signal.signal(sig, _signal_handler)

    # Global JSON error handler. Domain exceptions carry their own
    # ``http_status``; anything else becomes a generic 500.
    @flask_app.errorhandler(Exception)
    def _handle_unhandled(exc):
        from app.domain.exceptions import EphemeraError, MethodNotAllowedError, NotFoundError
        from app.utils.http import error_response, safe_error

        if isinstance(exc, HTTPException):
            status = int(exc.code or 500)
            if status >= 500:
                return safe_error(exc, status, context="http-exception")
            if status == 404:
                return error_response(NotFoundError.public_message, 404)
            if status == 405:
                return error_response(MethodNotAllowedError.public_message, 405)
            return error_response(exc.description or "Request failed", status)

        if isinstance(exc, EphemeraError):
            status = exc.http_status
            if status >= 500:
                return safe_error(exc, status, context=type(exc).__name__)
            return error_response(str(exc) or exc.public_message, status)

        return safe_error(exc, 500, context="unhandled")

    @flask_app.errorhandler(413)
    def _handle_too_large(_exc):
        from app.utils.http import error_response

        if request.path.endswith("/upload-photo"):
            limit_mb = config.photo_max_bytes // (1024 * 1024)
            return error_response(f"File too large. Maximum size is {limit_mb}MB.", 400)
        return error_response("Request payload too large", 413)

    flask_app.register_blueprint(plants_api, url_prefix="/api/plants")
    flask_app.register_blueprint(photos_api, url_prefix="/api/photos")
    flask_app.register_blueprint(sources_api, url_prefix="/api")

    for bp_name in flask_app.blueprints:
        logging.info(" Registered blueprint: %s", bp_name)

    logger = logging.getLogger(__name__)
    logger.info("Extra Ephemera application initialized (%s).", config.environment)

    return flask_app


__all__ = ["create_app"]

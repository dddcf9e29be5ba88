from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import Response, jsonify
from werkzeug.exceptions import HTTPException

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Generic user-facing messages: never leak internals
# ---------------------------------------------------------------------------
_GENERIC_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    401: "Unauthorized",
    404: "Resource not found",
    405: "Method not allowed",
    429: "Too many requests. Please try again later.",
    500: "An error occurred",
}


def safe_error(
    exc: BaseException | str | None,
    status: int = 500,
    *,
    context: str = "",
) -> Response:
    """Return a generic error response while logging the real cause.

    Use this instead of ``error_response(str(e), …)`` so that stack traces,
    upstream payloads and API keys never reach the client.

    Parameters
    ----------
    exc:
        The caught exception (or a plain description): logged server-side,
        **never** sent to the client.
    status:
        HTTP status code for the response (determines the generic message).
    context:
        Optional human-readable context logged alongside *exc*, e.g.
        ``"adding plant"``.
    """
    if isinstance(exc, BaseException):
        _log.error("API error [%s] %s: %s", status, context, exc, exc_info=exc)
    elif exc:
        _log.error("API error [%s] %s: %s", status, context, exc)
    message = _GENERIC_MESSAGES.get(status, _GENERIC_MESSAGES[500])
    return error_response(message, status)


def success_response(data: dict | list | None = None, status: int = 200) -> Response:
    response = jsonify(data if data is not None else {})
    response.status_code = status
    return response


def error_response(message: str, status: int = 500) -> Response:
    response = jsonify({"error": message})
    response.status_code = status
    return response


# ---------------------------------------------------------------------------
# Route decorator: eliminates per-route try/except boilerplate
# ---------------------------------------------------------------------------


def safe_route(
    error_message: str = "An error occurred",
    *,
    error_status: int = 500,
) -> Callable:
    """Decorator that wraps a Flask route handler with standardized error handling.

    Catches :class:`~app.domain.exceptions.EphemeraError` subclasses and maps
    them to the correct HTTP status via ``exc.http_status``. Client errors
    (4xx) carry their own public message; server errors (5xx) and any other
    ``Exception`` are logged with *error_message* as context and answered
    with a generic body.

    Usage::

        @plants_api.get("/plants/get")
        @safe_route("Failed to fetch plant")
        def get_plant():
            ...
    """
    from app.domain.exceptions import EphemeraError

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Response:
            try:
                return fn(*args, **kwargs)
            except HTTPException:
                raise
            except EphemeraError as exc:
                status = exc.http_status
                if status >= 500:
                    return safe_error(exc, status, context=error_message)
                return error_response(str(exc) or exc.public_message, status)
            except Exception as exc:
                return safe_error(exc, error_status, context=error_message)

        return wrapper

    return decorator

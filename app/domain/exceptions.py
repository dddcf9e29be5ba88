"""Centralized exception hierarchy for the plant catalogue.

All domain and service exceptions inherit from :class:`EphemeraError` so that
callers can catch a single base class when they need a broad safety net, yet
still match on specific subclasses where narrower handling is appropriate.

Blueprint-level error handling (see ``app/utils/http.safe_route``) maps these
to the correct HTTP status codes automatically.

Hierarchy
---------
::

    EphemeraError (base: maps to 500)
    ├── ValidationError          (400: bad input from caller)
    ├── UnauthorizedError        (401: missing / invalid credential)
    ├── NotFoundError            (404: entity does not exist)
    ├── MethodNotAllowedError    (405: wrong HTTP verb)
    ├── RateLimitExceededError   (429: sliding window exhausted)
    ├── ServiceError             (500: business-logic failure)
    │   ├── RepositoryError      (500: database / persistence)
    │   └── ExternalServiceError (500: Trefle, Perenual, image CDN)
    └── ConfigurationError       (500: missing / invalid config)
"""

from __future__ import annotations


class EphemeraError(Exception):
    """Base exception for all application errors.

    Parameters
    ----------
    message:
        Human-readable description. For 4xx subclasses this is the public
        message returned to the client; for 5xx subclasses it is logged
        server-side only.
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    http_status: int = 500
    public_message: str = "An error occurred"

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


# ── Client errors (4xx) ──────────────────────────────────────────────


class ValidationError(EphemeraError):
    """Caller supplied invalid or incomplete input (HTTP 400)."""

    http_status: int = 400
    public_message: str = "Invalid request"


class UnauthorizedError(EphemeraError):
    """No credential, or the identity provider rejected it (HTTP 401)."""

    http_status: int = 401
    public_message: str = "Unauthorized"


class NotFoundError(EphemeraError):
    """Requested entity does not exist (HTTP 404)."""

    http_status: int = 404
    public_message: str = "Resource not found"


class MethodNotAllowedError(EphemeraError):
    """HTTP method not supported by the endpoint (HTTP 405)."""

    http_status: int = 405
    public_message: str = "Method not allowed"


class RateLimitExceededError(EphemeraError):
    """Too many requests inside the sliding window (HTTP 429)."""

    http_status: int = 429
    public_message: str = "Too many requests. Please try again later."


# ── Server errors (5xx) ──────────────────────────────────────────────


class ServiceError(EphemeraError):
    """Business-logic failure in a service method (HTTP 500)."""

    http_status: int = 500


class RepositoryError(ServiceError):
    """Database / persistence layer failure (HTTP 500)."""

    http_status: int = 500


class ExternalServiceError(ServiceError):
    """Third-party or network dependency failure (HTTP 500)."""

    http_status: int = 500


class ConfigurationError(EphemeraError):
    """Missing or invalid application configuration (HTTP 500)."""

    http_status: int = 500

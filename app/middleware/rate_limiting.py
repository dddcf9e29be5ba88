"""
Rate Limiting Middleware
========================

Sliding-window rate limiter backed by a durable key-value store, so limits
hold across worker processes and restarts.

The window is tracked with exact request timestamps rather than fixed
buckets: every check drops timestamps older than the window, then either
admits the request (recording it) or denies it.

Usage:
    from app.middleware.rate_limiting import rate_limited

    @sources_api.get("/trefle")
    @rate_limited(by="search")
    def search_trefle():
        ...

    # Per-user limits need an authenticated request (see api_login_required):
    @plants_api.post("")
    @api_login_required
    @rate_limited(10, by="user")
    def add_plant():
        ...

The read-modify-write on a key is not locked. Two requests from the same
client landing at the same instant can both be admitted; the limiter is
advisory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable

from flask import Request, current_app, g, request

from app.domain.exceptions import RateLimitExceededError
from app.utils.time import epoch_ms
from infrastructure.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 60 * 1000


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate-limit check."""

    allowed: bool
    remaining: int
    reset_at: int  # epoch milliseconds, 0 when unknown


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    enabled: bool = True
    window_ms: int = DEFAULT_WINDOW_MS
    ip_limit: int = 60  # reads
    search_limit: int = 30  # upstream proxy endpoints
    user_limit: int = 10  # authenticated writes


def get_client_ip(req: Request) -> str:
    """Get the originating client address for *req*."""
    forwarded = req.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in the chain is the original client
        return forwarded.split(",")[0].strip()
    return req.headers.get("X-Real-IP") or "unknown"


class RateLimiter:
    """
    Sliding-window rate limiter.

    Fails open: if the backing store raises, the request is allowed with
    ``remaining=-1`` so a storage outage never blocks traffic.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: RateLimitConfig | None = None,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.store = store
        self.config = config or RateLimitConfig()
        self._clock = clock or epoch_ms

    def check(self, key: str, max_requests: int, window_ms: int | None = None) -> RateLimitResult:
        """
        Check (and record) a request for *key*.

        Args:
            key: Client identifier, e.g. ``"ip:1.2.3.4"`` or ``"user:user_123"``
            max_requests: Maximum requests allowed in the window
            window_ms: Window length in milliseconds (default from config)

        Returns:
            RateLimitResult(allowed, remaining, reset_at)
        """
        window = window_ms or self.config.window_ms
        try:
            now = self._clock()
            window_start = now - window

            existing = self.store.get_json(key)
            requests_in_window: list[int] = []
            if existing and isinstance(existing.get("requests"), list):
                requests_in_window = [ts for ts in existing["requests"] if ts > window_start]

            if len(requests_in_window) >= max_requests:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=min(requests_in_window) + window,
                )

            requests_in_window.append(now)
            # Twice the window so idle keys expire on their own
            self.store.set_json(key, {"requests": requests_in_window}, ttl_seconds=2 * window / 1000)

            return RateLimitResult(
                allowed=True,
                remaining=max_requests - len(requests_in_window),
                reset_at=now + window,
            )
        except Exception as exc:
            logger.error("Rate limit check failed: %s", exc)
            return RateLimitResult(allowed=True, remaining=-1, reset_at=0)

    def rate_limit_by_ip(self, req: Request, max_requests: int | None = None) -> RateLimitResult:
        """Limit public endpoints by client address."""
        limit = max_requests if max_requests is not None else self.config.ip_limit
        return self.check(f"ip:{get_client_ip(req)}", limit)

    def rate_limit_by_user(self, user_id: str, max_requests: int | None = None) -> RateLimitResult:
        """Limit authenticated endpoints by user identity."""
        limit = max_requests if max_requests is not None else self.config.user_limit
        return self.check(f"user:{user_id}", limit)


def get_limiter() -> RateLimiter:
    """Rate limiter of the current application."""
    return current_app.config["CONTAINER"].rate_limiter


def rate_limited(max_requests: int | None = None, *, by: str = "ip") -> Callable:
    """
    Decorator for rate limiting specific endpoints.

    Args:
        max_requests: Maximum requests per window (default from config)
        by: ``"ip"`` to key on the client address, ``"search"`` for the
            same key with the upstream-proxy limit, ``"user"`` to key on
            ``g.user_id`` (set by ``api_login_required``)

    Returns:
        Decorated function
    """
    if by not in ("ip", "search", "user"):
        raise ValueError(f"Unknown rate limit key: {by}")

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def wrapped(*args: Any, **kwargs: Any):
            limiter = get_limiter()

            if not limiter.config.enabled:
                return f(*args, **kwargs)

            if by == "user":
                user_id = g.get("user_id")
                if user_id is None:
                    raise RuntimeError("rate_limited(by='user') requires an authenticated request")
                result = limiter.rate_limit_by_user(user_id, max_requests)
                client_key = f"user:{user_id}"
            else:
                limit = max_requests
                if limit is None and by == "search":
                    limit = limiter.config.search_limit
                result = limiter.rate_limit_by_ip(request, limit)
                client_key = f"ip:{get_client_ip(request)}"

            if not result.allowed:
                logger.warning("Rate limit exceeded for %s on %s", client_key, request.endpoint)
                raise RateLimitExceededError()

            return f(*args, **kwargs)

        return wrapped

    return decorator

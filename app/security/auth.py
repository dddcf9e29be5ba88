"""
Authentication Gate
===================

Resolves the caller's identity from a session token issued by the external
identity provider. The token is read from ``Authorization: Bearer <token>``
or, failing that, from the provider's session cookie, then verified with the
provider's signing secret.

Verification failures of any kind (expired, malformed, bad signature) are
collapsed to "unauthenticated"; the reason is logged server-side only.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar, cast

import jwt
from flask import Request, current_app, g, request

from app.domain.exceptions import ConfigurationError, UnauthorizedError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., object])

DEFAULT_SESSION_COOKIE = "__session"
_BEARER_PREFIX = "Bearer "


class TokenVerifier:
    """Verifies identity-provider session tokens (signed JWTs)."""

    def __init__(
        self,
        secret_key: str | None,
        *,
        algorithms: Iterable[str] = ("HS256",),
        issuer: str | None = None,
        leeway: int = 0,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("AUTH_SECRET_KEY environment variable is not set")
        self._secret_key = secret_key
        self._algorithms = list(algorithms)
        self._issuer = issuer
        self._leeway = leeway

    def verify(self, token: str) -> Mapping[str, Any]:
        """Decode *token*, checking signature, expiry and subject.

        Raises:
            jwt.InvalidTokenError: if the token is not acceptable
        """
        options = {"require": ["sub"]}
        kwargs: dict[str, Any] = {"algorithms": self._algorithms, "options": options, "leeway": self._leeway}
        if self._issuer:
            kwargs["issuer"] = self._issuer
        return jwt.decode(token, self._secret_key, **kwargs)


def parse_cookies(cookie_header: str | None) -> dict[str, str]:
    """Parse a ``Cookie`` header.

    Pairs are separated by ``"; "``; each pair splits on the first ``=`` only
    so values may themselves contain ``=``. Pairs without a name are skipped.
    """
    cookies: dict[str, str] = {}
    if not cookie_header:
        return cookies

    for pair in cookie_header.split("; "):
        eq_index = pair.find("=")
        if eq_index > 0:
            cookies[pair[:eq_index]] = pair[eq_index + 1 :]
    return cookies


def extract_session_token(req: Request, cookie_name: str = DEFAULT_SESSION_COOKIE) -> Optional[str]:
    """Return the raw session token carried by *req*, if any.

    The Authorization header wins over the cookie.
    """
    auth_header = req.headers.get("Authorization")
    if auth_header and auth_header.startswith(_BEARER_PREFIX):
        token = auth_header[len(_BEARER_PREFIX) :]
        if token:
            return token

    cookies = parse_cookies(req.headers.get("Cookie"))
    return cookies.get(cookie_name) or None


def verify_auth(
    req: Request,
    verifier: TokenVerifier,
    *,
    cookie_name: str = DEFAULT_SESSION_COOKIE,
) -> Optional[str]:
    """Verify the credential on *req*.

    Returns:
        The token subject (user id), or None when there is no credential or
        the identity provider rejects it.
    """
    token = extract_session_token(req, cookie_name)
    if not token:
        return None

    try:
        payload = verifier.verify(token)
        return str(payload["sub"])
    except Exception as exc:
        logger.error("Auth verification failed: %s", exc)
        return None


def api_login_required(view_func: F) -> F:
    """Ensure the request is authenticated (raises ``UnauthorizedError`` otherwise).

    On success the user id is stored in ``flask.g.user_id``.
    """

    @wraps(view_func)
    def wrapped(*args, **kwargs):
        container = current_app.config["CONTAINER"]
        cookie_name = container.config.auth_session_cookie
        if not extract_session_token(request, cookie_name):
            raise UnauthorizedError()

        # Raises ConfigurationError (500) when the provider secret is missing
        verifier = container.get_token_verifier()
        user_id = verify_auth(request, verifier, cookie_name=cookie_name)
        if user_id is None:
            raise UnauthorizedError()

        g.user_id = user_id
        return view_func(*args, **kwargs)

    return cast(F, wrapped)


def current_user_id() -> str | None:
    return g.get("user_id")

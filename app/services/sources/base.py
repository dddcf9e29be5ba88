"""
Upstream Plant API Client Base
==============================

Shared HTTP plumbing for the Trefle and Perenual adapters:

- one ``requests.Session`` per client
- a bounded timeout on every call
- upstream failures (network, non-2xx, bad JSON) raised as
  ``ExternalServiceError`` with the API secret scrubbed from the message
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from app.domain.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class UpstreamClient:
    """Base class for third-party plant API clients."""

    #: Human-readable name used in logs and errors
    name = "upstream"
    #: Environment variable that holds the credential (for error messages)
    credential_env = ""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._session = session or requests.Session()
        self._timeout = timeout

    def _require_key(self) -> str:
        """Return the API key or fail before any network call."""
        if not self._api_key:
            raise ConfigurationError(f"{self.credential_env} not configured")
        return self._api_key

    def _redact(self, text: str) -> str:
        if self._api_key:
            return text.replace(self._api_key, "HIDDEN")
        return text

    def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        """GET *url* and return the decoded JSON body.

        Raises:
            ExternalServiceError: network failure, non-2xx status or invalid JSON
        """
        logger.debug("GET %s (%s)", url, self.name)
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ExternalServiceError(self._redact(f"{self.name} request failed: {exc}")) from None

        if not response.ok:
            raise ExternalServiceError(
                f"{self.name} returned HTTP {response.status_code}",
                detail={"status": response.status_code},
            )

        try:
            return response.json()
        except ValueError:
            raise ExternalServiceError(f"{self.name} returned invalid JSON") from None

    def close(self) -> None:
        self._session.close()


def coerce_int(value: Any) -> Optional[int]:
    """Best-effort integer from an upstream field (None when not numeric)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def coerce_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None

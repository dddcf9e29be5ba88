"""Photo blob storage.

Two backends share the ``PhotoStore`` protocol:

- ``FilesystemPhotoStore`` writes blobs under a local directory next to a
  small JSON sidecar holding the content type and upload metadata. Photos
  are served back by ``GET /api/photos/<key>``.
- ``CloudinaryPhotoStore`` pushes blobs to the Cloudinary image CDN with a
  signed upload request and hands back the CDN's ``secure_url``. Nothing is
  served locally in that mode.
"""
from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

import requests

from app.domain.exceptions import ConfigurationError, ExternalServiceError, ValidationError
from app.utils.time import iso_now

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,199}$")
_SIDECAR_SUFFIX = ".meta.json"


def validate_photo_key(key: Any) -> str:
    """Reject keys that could escape the storage directory."""
    if not isinstance(key, str) or not _KEY_RE.match(key) or ".." in key or key.endswith(_SIDECAR_SUFFIX):
        raise ValidationError("Invalid photo key")
    return key


@dataclass(frozen=True)
class StoredPhoto:
    key: str
    url: str


@dataclass(frozen=True)
class PhotoBlob:
    data: bytes
    content_type: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class PhotoStore(Protocol):
    def save(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> StoredPhoto: ...

    def load(self, key: str) -> Optional[PhotoBlob]: ...


class FilesystemPhotoStore:
    """Blob store on the local filesystem."""

    def __init__(self, root: str, *, public_base_url: str = "") -> None:
        self._root = os.path.abspath(root)
        self._public_base_url = public_base_url.rstrip("/")
        os.makedirs(self._root, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self._root, validate_photo_key(key))

    def url_for(self, key: str) -> str:
        return f"{self._public_base_url}/api/photos/{key}"

    def save(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> StoredPhoto:
        path = self._path(key)
        sidecar = {
            **dict(metadata or {}),
            "contentType": content_type,
            "uploadedAt": iso_now(),
        }
        logger.info("Uploading blob: %s, size: %s bytes", key, len(data))

        tmp = path + ".tmp"
        with open(tmp, "wb") as fh:
            fh.write(data)
        os.replace(tmp, path)

        tmp = path + _SIDECAR_SUFFIX + ".tmp"
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(sidecar, fh)
        os.replace(tmp, path + _SIDECAR_SUFFIX)

        return StoredPhoto(key=key, url=self.url_for(key))

    def load(self, key: str) -> Optional[PhotoBlob]:
        path = self._path(key)
        if not os.path.isfile(path):
            return None
        with open(path, "rb") as fh:
            data = fh.read()

        metadata: Dict[str, Any] = {}
        try:
            with open(path + _SIDECAR_SUFFIX, "r", encoding="utf-8") as fh:
                metadata = json.load(fh) or {}
        except FileNotFoundError:
            pass
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable metadata for photo %s: %s", key, exc)

        content_type = metadata.get("contentType") or "application/octet-stream"
        return PhotoBlob(data=data, content_type=content_type, metadata=metadata)


def sign_cloudinary_params(params: Mapping[str, Any], api_secret: str) -> str:
    """SHA-1 signature over the sorted ``key=value`` pairs plus the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()  # nosec B324: Cloudinary scheme


class CloudinaryPhotoStore:
    """Signed uploads to the Cloudinary image CDN."""

    UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"

    def __init__(
        self,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        *,
        folder: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self._cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret
        self._folder = folder or None
        self._session = session or requests.Session()
        self._timeout = timeout

    def _require_credentials(self) -> None:
        if not (self._cloud_name and self._api_key and self._api_secret):
            logger.error("Cloudinary credentials are not configured")
            raise ConfigurationError("Cloudinary credentials are not configured")

    def save(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> StoredPhoto:
        self._require_credentials()
        validate_photo_key(key)
        public_id = key.rsplit(".", 1)[0]
        params: Dict[str, Any] = {
            "public_id": public_id,
            "timestamp": int(time.time()),
        }
        if self._folder:
            params["folder"] = self._folder
        signature = sign_cloudinary_params(params, self._api_secret)

        try:
            response = self._session.post(
                self.UPLOAD_URL.format(cloud_name=self._cloud_name),
                data={**params, "api_key": self._api_key, "signature": signature},
                files={"file": (key, data, content_type)},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Cloudinary upload request failed for %s: %s", key, exc)
            raise ExternalServiceError("Cloudinary upload failed") from exc

        if not response.ok:
            logger.error("Cloudinary upload for %s returned %s", key, response.status_code)
            raise ExternalServiceError(f"Cloudinary returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise ExternalServiceError("Cloudinary returned invalid JSON") from exc

        secure_url = body.get("secure_url") if isinstance(body, dict) else None
        if not secure_url:
            raise ExternalServiceError("Cloudinary response missing secure_url")
        logger.info("Uploaded %s to Cloudinary (%s bytes)", key, len(data))
        return StoredPhoto(key=key, url=secure_url)

    def load(self, key: str) -> Optional[PhotoBlob]:
        # Served from the CDN directly
        return None

    def close(self) -> None:
        self._session.close()

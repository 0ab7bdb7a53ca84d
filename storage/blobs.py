"""Blob stores for answer recordings."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from interview_session.errors import StorageError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):  # Durable store returning a reference for each object
    def put(self, key: str, data: bytes, *, content_type: str) -> str: ...


class LocalBlobStore:
    """Writes objects under a root directory and returns ``file://`` references."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def put(self, key: str, data: bytes, *, content_type: str) -> str:
        path = self._path_for(key)
        if path.exists():
            raise StorageError(f"Object already exists: {key}")
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Failed to store recording {key}: {exc}") from exc
        logger.info("Stored recording key=%s bytes=%d type=%s", key, len(data), content_type)
        return path.resolve().as_uri()

    def _path_for(self, key: str) -> Path:
        parts = [part for part in key.split("/") if part]
        if not parts or any(part in (".", "..") for part in parts):
            raise StorageError(f"Invalid object key: {key!r}")
        return self._root.joinpath(*parts)


class HttpBlobStore:
    """Uploads objects to a bucket-style object storage REST API."""

    def __init__(
        self,
        base_url: str,
        bucket: str,
        *,
        api_key: Optional[str] = None,
        timeout_s: float = 30.0,
        client: Optional[Any] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._client = client

    def put(self, key: str, data: bytes, *, content_type: str) -> str:
        url = f"{self._base_url}/storage/v1/object/{self._bucket}/{key}"
        headers: Dict[str, str] = {"Content-Type": content_type, "x-upsert": "false"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        try:
            response = self._post(url, data, headers)
        except Exception as exc:  # noqa: BLE001
            logger.error("Recording upload transport failure: %s", exc)
            raise StorageError(f"Recording store unreachable: {exc}") from exc
        if response.status_code >= 400:
            logger.error("Recording upload failed status=%s", response.status_code)
            raise StorageError(f"Recording upload failed with status {response.status_code}")
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self._bucket}/{key}"

    def _post(self, url: str, data: bytes, headers: Dict[str, str]) -> Any:
        if self._client is not None:
            return self._client.post(url, content=data, headers=headers, timeout=self._timeout_s)
        import httpx

        with httpx.Client(timeout=self._timeout_s) as client:
            return client.post(url, content=data, headers=headers)


__all__ = ["BlobStore", "HttpBlobStore", "LocalBlobStore"]

"""Fetch company data bundles from Cloud Storage or plain HTTP(S)."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import urlparse

import httpx
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from app.core.config import StorageSettings
from app.core.errors import DataFetchError

logger = logging.getLogger(__name__)


def parse_gcs_uri(uri: str) -> tuple[str, str]:
    """Split ``gs://bucket/path/to/object`` into bucket and object path."""
    if not uri.startswith("gs://"):
        raise DataFetchError(uri, "not a gs:// URI")
    bucket, _, object_path = uri[len("gs://") :].partition("/")
    if not bucket or not object_path:
        raise DataFetchError(uri, "URI must name both a bucket and an object")
    return bucket, object_path


class BundleStorageClient:
    """Resolve bundle references into parsed JSON documents.

    Failures are raised as ``DataFetchError`` and never retried.
    """

    def __init__(
        self,
        settings: StorageSettings,
        *,
        gcs_client: storage.Client | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._gcs_client = gcs_client
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            timeout=settings.bundle_fetch_timeout
        )

    async def fetch(self, ref: str) -> dict[str, Any]:
        scheme = urlparse(ref).scheme
        if scheme == "gs":
            raw = await self._download_gcs(ref)
        elif scheme in ("http", "https"):
            raw = await self._download_http(ref)
        else:
            raise DataFetchError(ref, f"unsupported scheme '{scheme or 'none'}'")

        try:
            payload = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DataFetchError(ref, f"invalid JSON ({exc})") from exc
        if not isinstance(payload, dict):
            raise DataFetchError(ref, "bundle must be a JSON object")
        return payload

    async def fetch_many(self, refs: list[str]) -> list[dict[str, Any]]:
        """Fetch every reference in order; the first failure aborts the batch."""
        bundles = []
        for ref in refs:
            bundles.append(await self.fetch(ref))
        return bundles

    async def _download_gcs(self, ref: str) -> bytes:
        bucket_name, object_path = parse_gcs_uri(ref)

        client = self._gcs_client
        if client is None:
            raise DataFetchError(ref, "Cloud Storage client is not configured")

        def _invoke() -> bytes:
            return client.bucket(bucket_name).blob(object_path).download_as_bytes()

        logger.debug("Downloading bundle %s", ref)
        try:
            return await asyncio.to_thread(_invoke)
        except (GoogleAPIError, GoogleAuthError) as exc:
            raise DataFetchError(ref, str(exc)) from exc

    async def _download_http(self, ref: str) -> bytes:
        try:
            response = await self._http_client.get(ref)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as exc:
            raise DataFetchError(ref, str(exc)) from exc

    async def aclose(self) -> None:
        """Close the HTTP connection pool if this client created it."""
        if self._owns_http_client:
            await self._http_client.aclose()


def build_gcs_client(settings: StorageSettings) -> storage.Client | None:
    """Create the Cloud Storage client, or ``None`` when no credentials exist.

    Without credentials only ``http(s)`` bundles can be fetched; ``gs://``
    references fail with ``DataFetchError``.
    """
    try:
        return storage.Client(project=settings.gcs_project)
    except GoogleAuthError as exc:
        logger.warning("Cloud Storage disabled, no usable credentials: %s", exc)
        return None


__all__ = ["BundleStorageClient", "build_gcs_client", "parse_gcs_uri"]

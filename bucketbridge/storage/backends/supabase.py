"""Supabase Storage backend (the managed side of a migration)."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

import httpx

from bucketbridge.storage.base import StorageBackend
from bucketbridge.storage.core import (
    ConnectivityError,
    FetchError,
    HealthCheckResult,
    ListError,
    UploadError,
)
from bucketbridge.storage.types import BackendKind, FetchedObject, ObjectDescriptor, parse_timestamp


@dataclass
class _SupabaseConfig:
    url: str
    service_role_key: str


class SupabaseBackend(StorageBackend):
    """
    Interact with Supabase Storage using the service role key.

    Locations are bucket ids. Listings come back newest first; public URLs
    are derived from bucket and name without a network call.
    """

    kind = BackendKind.MANAGED
    name = "supabase"

    def __init__(
        self,
        *,
        url: str,
        service_role_key: str,
        default_limit: int = 500,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__()
        if not url:
            raise ConnectivityError("Supabase URL is not configured", backend=self.name)
        if not service_role_key:
            raise ConnectivityError("Supabase service role key is not configured", backend=self.name)

        self._config = _SupabaseConfig(url=url.rstrip("/"), service_role_key=service_role_key)
        self.default_limit = default_limit
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=f"{self._config.url}/storage/v1",
            headers={
                "Authorization": f"Bearer {self._config.service_role_key}",
                "apikey": self._config.service_role_key,
            },
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # StorageBackend interface
    # ------------------------------------------------------------------
    async def probe(self) -> HealthCheckResult:
        # Same runtime as the engine; not probed
        return HealthCheckResult.available(message="managed backend", backend=self.name)

    async def list(self, location: str, limit: int | None = None) -> list[ObjectDescriptor]:
        payload = {
            "prefix": "",
            "limit": limit or self.default_limit,
            "offset": 0,
            "sortBy": {"column": "created_at", "order": "desc"},
        }
        try:
            response = await self._client.post(f"/object/list/{location}", json=payload)
        except httpx.HTTPError as e:
            raise ListError(f"Failed to list bucket {location!r}: {e}", backend=self.name, location=location) from e

        if response.status_code >= 400:
            raise ListError(
                f"Failed to list bucket {location!r}: {response.status_code} {response.text}",
                backend=self.name,
                location=location,
            )

        try:
            entries = response.json()
        except ValueError as e:
            raise ListError("Storage API returned a non-JSON listing", backend=self.name, location=location) from e
        if not isinstance(entries, list):
            raise ListError("Storage API returned an unexpected listing shape", backend=self.name, location=location)

        descriptors: list[ObjectDescriptor] = []
        for entry in entries:
            name = entry.get("name")
            if not name or name.endswith("/"):
                continue
            metadata = entry.get("metadata") or {}
            descriptors.append(
                ObjectDescriptor(
                    name=name,
                    size_bytes=int(metadata.get("size") or 0),
                    last_modified=parse_timestamp(entry.get("created_at")),
                    public_url=self.public_url(location, name),
                )
            )

        self._log_operation("list", location=location, count=len(descriptors))
        return descriptors

    async def fetch(self, name: str, location: str | None = None) -> FetchedObject:
        if not location:
            raise FetchError("A bucket is required to fetch from managed storage", name=name, backend=self.name)
        try:
            response = await self._client.get(f"/object/{location}/{quote(name, safe='/')}")
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to download {name!r}: {e}", name=name, backend=self.name) from e

        if response.status_code >= 400:
            raise FetchError(
                f"Failed to download {name!r}: {response.status_code}",
                name=name,
                backend=self.name,
            )

        self._log_operation("fetch", item_id=name, bucket=location)
        return FetchedObject(
            name=name,
            payload=response.content,
            content_type=response.headers.get("content-type", ""),
        )

    async def put(self, location: str, name: str, payload: bytes, content_type: str) -> str:
        try:
            response = await self._client.post(
                f"/object/{location}/{quote(name, safe='/')}",
                content=payload,
                headers={"content-type": content_type, "x-upsert": "true"},
            )
        except httpx.HTTPError as e:
            raise UploadError(f"Failed to upload {name!r}: {e}", name=name, location=location, backend=self.name) from e

        if response.status_code >= 400:
            raise UploadError(
                f"Failed to upload {name!r}: {response.status_code} {response.text}",
                name=name,
                location=location,
                backend=self.name,
            )

        self._log_operation("put", item_id=name, bucket=location, size=len(payload))
        return name

    def public_url(self, location: str, name: str) -> str:
        return f"{self._config.url}/storage/v1/object/public/{location}/{name}"

    async def close(self) -> None:  # pragma: no cover - convenience helper
        if self._owns_client:
            await self._client.aclose()
        await super().close()

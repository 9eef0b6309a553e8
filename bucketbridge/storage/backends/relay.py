"""
Relay Storage Backend

Self-hosted S3-compatible storage reached through a server-side function.
The store is not reachable from the calling context directly, so every
verb is a JSON POST to the function:

    {"action": "list", "prefix": "products/", "limit": 200}
    {"action": "get", "fileName": "products/a.jpg"}
    {"action": "upload", "fileName": "a.jpg", "fileData": "<base64>",
     "contentType": "image/jpeg", "folder": "products", "preserveName": true}

Every answer carries a ``success`` marker; anything else is a failure.
Binary payloads cross the function boundary base64 encoded.
"""

import base64
from typing import Any

import httpx

from bucketbridge.storage.base import StorageBackend
from bucketbridge.storage.core import (
    ConnectivityError,
    FetchError,
    HealthCheckResult,
    ListError,
    StorageError,
    UploadError,
)
from bucketbridge.storage.types import BackendKind, FetchedObject, ObjectDescriptor


class RelayError(StorageError):
    """The relay function failed or answered without a success marker."""


class RelayBackend(StorageBackend):
    """
    Self-hosted backend accessed through the storage relay function.

    Example:
        >>> backend = RelayBackend(
        ...     function_url="https://abc.supabase.co/functions/v1/minio-storage",
        ...     api_key="service-role-key",
        ... )
        >>> async with backend:
        ...     files = await backend.list("products")
    """

    kind = BackendKind.SELF_HOSTED
    name = "relay"

    def __init__(
        self,
        function_url: str,
        api_key: str | None = None,
        public_base_url: str | None = None,
        default_limit: int = 200,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__()
        if not function_url:
            msg = "Relay function URL is not configured"
            raise ConnectivityError(msg, backend=self.name)

        self.function_url = function_url
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.default_limit = default_limit

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
            headers["apikey"] = api_key

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers

    async def _invoke(self, action: str, **body: Any) -> dict[str, Any]:
        """POST one action to the relay and return its decoded answer."""
        payload = {"action": action, **body}
        try:
            response = await self._client.post(
                self.function_url, json=payload, headers=self._headers
            )
        except httpx.HTTPError as e:
            msg = f"Relay request failed: {e}"
            raise RelayError(msg, details={"action": action}) from e

        try:
            data = response.json()
        except ValueError as e:
            msg = f"Relay returned a non-JSON response (status {response.status_code})"
            raise RelayError(msg, details={"action": action}) from e

        if not isinstance(data, dict):
            msg = "Relay returned an unexpected response shape"
            raise RelayError(msg, details={"action": action})

        if response.status_code >= 400 or not data.get("success"):
            msg = data.get("error") or f"Relay {action} failed (status {response.status_code})"
            raise RelayError(msg, details={"action": action, "status": response.status_code})

        return data

    async def probe(self) -> HealthCheckResult:
        """List one object from the bucket root."""
        try:
            await self._invoke("list", prefix="", limit=1)
        except RelayError as e:
            return HealthCheckResult.unavailable(e.message, backend=self.name)
        return HealthCheckResult.available(backend=self.name)

    async def list(self, location: str, limit: int | None = None) -> list[ObjectDescriptor]:
        prefix = f"{location.strip('/')}/" if location else ""
        try:
            data = await self._invoke("list", prefix=prefix, limit=limit or self.default_limit)
        except RelayError as e:
            raise ListError(e.message, backend=self.name, location=location) from e

        files = data.get("files")
        if not isinstance(files, list):
            msg = "Relay list response has no file list"
            raise ListError(msg, backend=self.name, location=location)

        try:
            descriptors = [ObjectDescriptor.from_dict(f) for f in files]
        except (AttributeError, KeyError, TypeError) as e:
            msg = f"Relay list response is malformed: {e}"
            raise ListError(msg, backend=self.name, location=location) from e

        self._log_operation("list", location=location, count=len(descriptors))
        # Relay order is kept as-is
        return descriptors

    async def fetch(self, name: str, location: str | None = None) -> FetchedObject:
        try:
            data = await self._invoke("get", fileName=name)
        except RelayError as e:
            raise FetchError(e.message, name=name, backend=self.name) from e

        file_data = data.get("fileData")
        if not isinstance(file_data, str):
            msg = f"Relay get response for {name!r} carries no file data"
            raise FetchError(msg, name=name, backend=self.name)

        self._log_operation("fetch", item_id=name)
        return FetchedObject(
            name=name,
            payload=file_data,
            content_type=data.get("contentType") or "",
            encoding="base64",
        )

    async def put(self, location: str, name: str, payload: bytes, content_type: str) -> str:
        try:
            data = await self._invoke(
                "upload",
                fileName=name,
                fileData=base64.b64encode(payload).decode("ascii"),
                contentType=content_type,
                folder=location,
                preserveName=True,
            )
        except RelayError as e:
            raise UploadError(e.message, name=name, location=location, backend=self.name) from e

        stored = data.get("fileName") or self.object_key(location, name)
        self._log_operation("put", item_id=stored, size=len(payload))
        return stored

    @staticmethod
    def object_key(location: str, name: str) -> str:
        """Key the relay stores a preserved-name upload under."""
        clean = name.lstrip("/")
        return f"{location}/{clean}" if location else clean

    def public_url(self, location: str, name: str) -> str:
        key = self.object_key(location, name)
        if not self.public_base_url:
            return key
        return f"{self.public_base_url}/{key}"

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
        await super().close()

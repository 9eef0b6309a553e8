# ============================================
# FILE: bucketbridge/storage/backends/s3.py
# ============================================

"""
Direct S3 Storage Backend

Self-hosted S3-compatible storage (MinIO) accessed with its native
protocol, for deployments where the endpoint is reachable from the engine
without going through the relay function. One bucket holds every folder;
folders are key prefixes.

Requires: pip install aioboto3
"""

import asyncio
from typing import Any

from bucketbridge.core.exceptions import MissingDependencyError
from bucketbridge.storage.base import StorageBackend
from bucketbridge.storage.core import (
    ConnectivityError,
    FetchError,
    HealthCheckResult,
    ListError,
    UploadError,
)
from bucketbridge.storage.types import BackendKind, FetchedObject, ObjectDescriptor

try:
    import aioboto3

    AIOBOTO3_AVAILABLE = True
except ImportError:
    AIOBOTO3_AVAILABLE = False  # pragma: no cover
    aioboto3 = None  # pragma: no cover


class S3Backend(StorageBackend):
    """
    S3-compatible implementation of the self-hosted backend.

    Example:
        >>> backend = S3Backend(
        ...     bucket_name="media",
        ...     endpoint_url="https://s3.example.com",
        ...     aws_access_key_id="...",
        ...     aws_secret_access_key="...",
        ... )
        >>> async with backend:
        ...     files = await backend.list("products")
    """

    kind = BackendKind.SELF_HOSTED
    name = "s3"

    def __init__(
        self,
        bucket_name: str,
        endpoint_url: str | None = None,
        region_name: str = "us-east-1",
        public_base_url: str | None = None,
        default_limit: int = 200,
        **s3_kwargs,
    ):
        if not AIOBOTO3_AVAILABLE:
            msg = "aioboto3"
            raise MissingDependencyError(msg, "Direct S3 storage backend")

        super().__init__()
        self.bucket_name = bucket_name
        self.endpoint_url = endpoint_url
        self.region_name = region_name
        self.default_limit = default_limit
        if public_base_url:
            self.public_base_url = public_base_url.rstrip("/")
        elif endpoint_url:
            self.public_base_url = f"{endpoint_url.rstrip('/')}/{bucket_name}"
        else:
            self.public_base_url = None
        self.s3_kwargs = s3_kwargs
        self._session = None
        self._s3_client = None
        self._client_cm = None
        self._lock = asyncio.Lock()

    async def _get_s3_client(self):
        """Get S3 client, creating if necessary"""
        async with self._lock:
            if self._s3_client is None:
                try:
                    self._session = aioboto3.Session()
                    self._client_cm = self._session.client(
                        "s3",
                        endpoint_url=self.endpoint_url,
                        region_name=self.region_name,
                        **self.s3_kwargs,
                    )
                    self._s3_client = await self._client_cm.__aenter__()
                except Exception as e:
                    msg = f"Failed to create S3 client: {e}"
                    raise ConnectivityError(msg, backend=self.name, url=self.endpoint_url) from e

        return self._s3_client

    async def probe(self) -> HealthCheckResult:
        try:
            s3 = await self._get_s3_client()
            await s3.list_objects_v2(Bucket=self.bucket_name, MaxKeys=1)
        except Exception as e:
            return HealthCheckResult.unavailable(str(e) or type(e).__name__, backend=self.name)
        return HealthCheckResult.available(backend=self.name)

    async def list(self, location: str, limit: int | None = None) -> list[ObjectDescriptor]:
        prefix = f"{location.strip('/')}/" if location else ""
        params: dict[str, Any] = {
            "Bucket": self.bucket_name,
            "MaxKeys": limit or self.default_limit,
        }
        if prefix:
            params["Prefix"] = prefix

        try:
            s3 = await self._get_s3_client()
            response = await s3.list_objects_v2(**params)
        except Exception as e:
            raise ListError(f"Failed to list objects: {e}", backend=self.name, location=location) from e

        descriptors = [
            ObjectDescriptor(
                name=entry["Key"],
                size_bytes=int(entry.get("Size", 0)),
                last_modified=entry.get("LastModified"),
                public_url=self._url_for_key(entry["Key"]),
            )
            for entry in response.get("Contents", [])
        ]
        self._log_operation("list", location=location, count=len(descriptors))
        return descriptors

    async def fetch(self, name: str, location: str | None = None) -> FetchedObject:
        try:
            s3 = await self._get_s3_client()
            response = await s3.get_object(Bucket=self.bucket_name, Key=name)
            body = await response["Body"].read()
        except Exception as e:
            raise FetchError(f"Failed to get object: {e}", name=name, backend=self.name) from e

        self._log_operation("fetch", item_id=name, size=len(body))
        return FetchedObject(
            name=name,
            payload=body,
            content_type=response.get("ContentType") or "",
        )

    async def put(self, location: str, name: str, payload: bytes, content_type: str) -> str:
        key = self.object_key(location, name)
        try:
            s3 = await self._get_s3_client()
            await s3.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=payload,
                ContentType=content_type,
            )
        except Exception as e:
            raise UploadError(f"Failed to upload: {e}", name=name, location=location, backend=self.name) from e

        self._log_operation("put", item_id=key, size=len(payload))
        return key

    @staticmethod
    def object_key(location: str, name: str) -> str:
        clean = name.lstrip("/")
        return f"{location}/{clean}" if location else clean

    def _url_for_key(self, key: str) -> str:
        if not self.public_base_url:
            return key
        return f"{self.public_base_url}/{key}"

    def public_url(self, location: str, name: str) -> str:
        return self._url_for_key(self.object_key(location, name))

    async def close(self) -> None:
        if self._client_cm is not None:
            await self._client_cm.__aexit__(None, None, None)
            self._client_cm = None
            self._s3_client = None
        await super().close()

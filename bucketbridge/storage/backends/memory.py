"""
In-Memory Storage Backend

Dict-backed backend for tests, local trial runs and demos. It can play
either side of a migration and can be told to fail specific objects, to
answer with a given content type, or to hand out base64 payloads the way
the relay function does.
"""

from __future__ import annotations

import base64
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from bucketbridge.storage.base import StorageBackend
from bucketbridge.storage.core import (
    FetchError,
    HealthCheckResult,
    ListError,
    StorageError,
    UploadError,
)
from bucketbridge.storage.types import BackendKind, FetchedObject, ObjectDescriptor


@dataclass
class StoredObject:
    payload: bytes = field(repr=False)
    content_type: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemoryBackend(StorageBackend):
    """
    In-memory storage backend.

    Example:
        >>> source = InMemoryBackend(kind=BackendKind.SELF_HOSTED)
        >>> source.seed("products", "products/a.jpg", b"...", "image/jpeg")
        >>> await source.list("products")
    """

    name = "memory"

    def __init__(
        self,
        kind: BackendKind = BackendKind.SELF_HOSTED,
        name: str | None = None,
        base64_payloads: bool = False,
        available: bool = True,
        public_base_url: str = "memory://local",
    ):
        if name:
            self.name = name
        super().__init__()
        self.kind = kind
        self.base64_payloads = base64_payloads
        self.available = available
        self.public_base_url = public_base_url.rstrip("/")

        self._objects: dict[str, dict[str, StoredObject]] = {}
        self.fetch_failures: dict[str, Exception] = {}
        self.put_failures: dict[str, Exception] = {}
        self.list_failures: dict[str, Exception] = {}
        self.declared_types: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []

    def seed(
        self,
        location: str,
        name: str,
        payload: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Place an object without recording a call."""
        self._objects.setdefault(location, {})[name] = StoredObject(payload, content_type)

    def seed_many(self, location: str, names: Iterable[str], content_type: str = "image/jpeg") -> None:
        for name in names:
            self.seed(location, name, f"bytes of {name}".encode(), content_type)

    def objects(self, location: str) -> dict[str, StoredObject]:
        """Objects currently stored in a location."""
        return dict(self._objects.get(location, {}))

    async def probe(self) -> HealthCheckResult:
        self.calls.append(("probe", ""))
        if not self.available:
            return HealthCheckResult.unavailable("memory backend marked unavailable", backend=self.name)
        return HealthCheckResult.available(backend=self.name)

    async def list(self, location: str, limit: int | None = None) -> list[ObjectDescriptor]:
        self.calls.append(("list", location))
        if not self.available:
            raise ListError("memory backend marked unavailable", backend=self.name, location=location)
        if location in self.list_failures:
            raise self.list_failures[location]

        stored = self._objects.get(location, {})
        descriptors = [
            ObjectDescriptor(
                name=name,
                size_bytes=len(obj.payload),
                last_modified=obj.created_at,
                public_url=self.public_url(location, name),
            )
            for name, obj in stored.items()
        ]
        if self.kind is BackendKind.MANAGED:
            descriptors.sort(key=lambda d: d.last_modified, reverse=True)
        return descriptors[:limit] if limit else descriptors

    def _find(self, name: str, location: str | None) -> StoredObject | None:
        if location is not None and name in self._objects.get(location, {}):
            return self._objects[location][name]
        for stored in self._objects.values():
            if name in stored:
                return stored[name]
        return None

    async def fetch(self, name: str, location: str | None = None) -> FetchedObject:
        self.calls.append(("fetch", name))
        if name in self.fetch_failures:
            raise self.fetch_failures[name]

        obj = self._find(name, location)
        if obj is None:
            raise FetchError(f"Object not found: {name}", name=name, backend=self.name)

        content_type = self.declared_types.get(name, obj.content_type)
        if self.base64_payloads:
            return FetchedObject(
                name=name,
                payload=base64.b64encode(obj.payload).decode("ascii"),
                content_type=content_type,
                encoding="base64",
            )
        return FetchedObject(name=name, payload=obj.payload, content_type=content_type)

    async def put(self, location: str, name: str, payload: bytes, content_type: str) -> str:
        self.calls.append(("put", name))
        if name in self.put_failures:
            error = self.put_failures[name]
            if isinstance(error, StorageError):
                raise error
            raise UploadError(str(error), name=name, location=location, backend=self.name) from error

        self._objects.setdefault(location, {})[name] = StoredObject(payload, content_type)
        return name

    def public_url(self, location: str, name: str) -> str:
        return f"{self.public_base_url}/{location}/{name}"

    def calls_to(self, verb: str) -> list[str]:
        return [arg for called, arg in self.calls if called == verb]

"""
Storage backend capability interface.

Every backend taking part in a migration implements the same four verbs,
so the lister and the transfer engine never branch on which store they are
talking to:

- probe(): cheap reachability check
- list(location): descriptors of the objects in a location
- fetch(name): object payload and declared content type
- put(location, name, payload, content_type): upsert an object

Backends are explicit values passed to the lister and engine; there is no
process-wide client.
"""

import logging
from abc import ABC, abstractmethod

from bucketbridge.core.logger import get_logger

from .core.health import HealthCheckResult
from .types import BackendKind, FetchedObject, ObjectDescriptor


class StorageBackend(ABC):
    """
    Base class for all storage backends.

    Provides:
    - Async context manager support
    - Logging setup
    - The capability interface the engine consumes

    Subclasses must implement:
    - probe()
    - list()
    - fetch()
    - put()
    - public_url()
    """

    kind: BackendKind
    name: str = "storage"

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or get_logger(f"bucketbridge.storage.{self.name}")
        self._closed = False

    @property
    def is_closed(self) -> bool:
        """Check if the backend has been closed."""
        return self._closed

    @abstractmethod
    async def probe(self) -> HealthCheckResult:
        """
        Check that the backend answers.

        Returns:
            HealthCheckResult, HEALTHY when operations may proceed
        """
        ...

    @abstractmethod
    async def list(self, location: str, limit: int | None = None) -> list[ObjectDescriptor]:
        """
        List the objects stored in a location.

        Args:
            location: Folder (self-hosted) or bucket id (managed)
            limit: Optional cap on the number of descriptors

        Raises:
            ListError: On transport failure or an unreadable response
        """
        ...

    @abstractmethod
    async def fetch(self, name: str, location: str | None = None) -> FetchedObject:
        """
        Read one object.

        Args:
            name: Object key as it appeared in the listing
            location: Location the object was listed from, for backends
                whose keys are location-relative

        Raises:
            FetchError: When the object cannot be read
        """
        ...

    @abstractmethod
    async def put(self, location: str, name: str, payload: bytes, content_type: str) -> str:
        """
        Write one object, overwriting any object of the same name.

        Returns:
            The key the object was stored under

        Raises:
            UploadError: When the write is rejected
        """
        ...

    @abstractmethod
    def public_url(self, location: str, name: str) -> str:
        """Deterministic public URL of an object."""
        ...

    async def close(self) -> None:
        """Release network resources. The backend must not be used afterwards."""
        self._closed = True

    async def __aenter__(self) -> "StorageBackend":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _log_operation(self, operation: str, item_id: str | None = None, **kwargs) -> None:
        """Log a storage operation at debug level."""
        extra = {"operation": operation, "backend": self.name}
        if item_id:
            extra["item_id"] = item_id
        extra.update(kwargs)

        self._logger.debug(f"Storage operation: {operation}", extra=extra)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} ({self.kind.value})>"

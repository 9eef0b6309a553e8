"""
Unified error hierarchy for storage operations.

All backend failures inherit from StorageError so a run can capture any
of them on the failing item without unwinding past the engine.

Taxonomy:
- ConnectivityError: the self-hosted backend did not answer the probe
- ListError: listing a location failed
- FetchError: reading an object from the source failed
- IntegrityError: the source answered with a page instead of object bytes
- UploadError: writing to the destination failed
"""

import re
from typing import Any


class StorageError(Exception):
    """
    Base exception for all storage operations.

    All storage backends raise subclasses of this exception,
    making it easy to catch storage-related errors.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class ConnectivityError(StorageError):
    """
    Failed to reach a storage backend.

    Raised when:
    - The probe list call fails or times out
    - The relay answers without a success marker
    - Authentication is rejected
    """

    def __init__(
        self,
        message: str = "Storage backend is not reachable",
        backend: str | None = None,
        url: str | None = None,
        **details,
    ):
        super().__init__(
            message,
            details={"backend": backend, "url": self._mask_url(url), **details},
        )
        self.backend = backend
        self.url = url

    @staticmethod
    def _mask_url(url: str | None) -> str | None:
        """Mask credentials embedded in a URL."""
        if not url:
            return None
        return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


class ListError(StorageError):
    """Listing a location failed (transport failure or unreadable response)."""

    def __init__(
        self,
        message: str = "Failed to list objects",
        backend: str | None = None,
        location: str | None = None,
        **details,
    ):
        super().__init__(message, details={"backend": backend, "location": location, **details})
        self.backend = backend
        self.location = location


class FetchError(StorageError):
    """Reading an object from the source backend failed."""

    def __init__(
        self,
        message: str = "Failed to fetch object",
        name: str | None = None,
        backend: str | None = None,
        **details,
    ):
        super().__init__(message, details={"name": name, "backend": backend, **details})
        self.name = name
        self.backend = backend


class IntegrityError(FetchError):
    """
    The source returned a web page where object bytes were expected.

    A reverse proxy, WAF or CDN challenge in front of the source can answer
    200 OK with an HTML body. Writing that body under an image name would
    silently corrupt the destination, so the item fails instead.
    """

    def __init__(
        self,
        name: str,
        content_type: str,
        backend: str | None = None,
        **details,
    ):
        message = (
            f"Source returned {content_type or 'a web page'} instead of the file bytes for "
            f"{name!r}. This is usually caused by a reverse proxy, WAF or CDN rule in front "
            f"of the source storage. Fix that first, then re-run the migration."
        )
        super().__init__(message, name=name, backend=backend, content_type=content_type, **details)
        self.content_type = content_type

    def __str__(self) -> str:
        return self.message


class UploadError(StorageError):
    """Writing an object to the destination backend failed."""

    def __init__(
        self,
        message: str = "Failed to upload object",
        name: str | None = None,
        location: str | None = None,
        backend: str | None = None,
        **details,
    ):
        super().__init__(
            message,
            details={"name": name, "location": location, "backend": backend, **details},
        )
        self.name = name
        self.location = location
        self.backend = backend

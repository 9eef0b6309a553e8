"""
bucketbridge storage layer.

One capability interface (StorageBackend) with a concrete implementation per
object store, plus the error taxonomy and value types they share.

Usage:
    >>> from bucketbridge.storage import create_backend
    >>> source = create_backend("self-hosted", config)
    >>> destination = create_backend("managed", config)
"""

from .base import StorageBackend
from .core import (
    ConnectivityError,
    FetchError,
    HealthCheckResult,
    HealthStatus,
    IntegrityError,
    ListError,
    StorageError,
    UploadError,
)
from .types import BackendKind, FetchedObject, ObjectDescriptor

__all__ = [
    "BackendKind",
    "ConnectivityError",
    "FetchError",
    "FetchedObject",
    "HealthCheckResult",
    "HealthStatus",
    "IntegrityError",
    "ListError",
    "ObjectDescriptor",
    "StorageBackend",
    "StorageError",
    "UploadError",
    "create_backend",
]


def __getattr__(name: str):
    # factory imports the config module, which imports migration types
    if name == "create_backend":
        from .factory import create_backend

        return create_backend
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)

"""
bucketbridge - Image migration between self-hosted and managed object storage

Copies selected objects between an S3-compatible store (usually reached
through a relay function) and Supabase Storage:
- Connectivity probe for the self-hosted side
- Live listings with per-location selection
- Folder ↔ bucket mapping table
- Per-object transfer with integrity guard, MIME inference and upsert
- Structured logging and Prometheus metrics

Usage:
    >>> from bucketbridge import Direction, LocationMap, TransferEngine, create_backend
    >>>
    >>> relay = create_backend("self-hosted")
    >>> supabase = create_backend("managed")
    >>> engine = TransferEngine(relay, supabase, LocationMap.default())
    >>> result = await engine.run(["products/a.jpg"], "products", Direction.SELF_HOSTED_TO_MANAGED)
"""

__version__ = "0.3.0"

from bucketbridge.core.config import MigrationConfig, configure, get_config
from bucketbridge.core.exceptions import (
    BucketBridgeError,
    ConfigurationError,
    InvalidStateTransitionError,
    MissingDependencyError,
    RunInProgressError,
)
from bucketbridge.core.logger import get_logger, set_logger
from bucketbridge.migration import (
    CancelToken,
    ConnectivityProbe,
    Direction,
    LocationMap,
    ObjectLister,
    RunOutcome,
    SelectionSet,
    TransferConfig,
    TransferEngine,
    TransferEvent,
    TransferItem,
    TransferResult,
    TransferRun,
    TransferStatus,
    TransferSummary,
    normalize_storage_url,
    parse_storage_url,
)
from bucketbridge.storage import (
    BackendKind,
    ConnectivityError,
    FetchError,
    IntegrityError,
    ListError,
    ObjectDescriptor,
    StorageBackend,
    StorageError,
    UploadError,
)
from bucketbridge.storage.factory import create_backend

__all__ = [
    "BackendKind",
    "BucketBridgeError",
    "CancelToken",
    "ConfigurationError",
    "ConnectivityError",
    "ConnectivityProbe",
    "Direction",
    "FetchError",
    "IntegrityError",
    "InvalidStateTransitionError",
    "ListError",
    "LocationMap",
    "MigrationConfig",
    "MissingDependencyError",
    "ObjectDescriptor",
    "ObjectLister",
    "RunInProgressError",
    "RunOutcome",
    "SelectionSet",
    "StorageBackend",
    "StorageError",
    "TransferConfig",
    "TransferEngine",
    "TransferEvent",
    "TransferItem",
    "TransferResult",
    "TransferRun",
    "TransferStatus",
    "TransferSummary",
    "UploadError",
    "__version__",
    "configure",
    "create_backend",
    "get_config",
    "get_logger",
    "normalize_storage_url",
    "parse_storage_url",
    "set_logger",
]

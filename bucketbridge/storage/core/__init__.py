"""
Shared infrastructure for all storage backends:
- Error hierarchy
- Health check infrastructure
"""

from .errors import (
    ConnectivityError,
    FetchError,
    IntegrityError,
    ListError,
    StorageError,
    UploadError,
)
from .health import HealthCheckResult, HealthStatus, check_health_with_timeout

__all__ = [
    "ConnectivityError",
    "FetchError",
    "HealthCheckResult",
    "HealthStatus",
    "IntegrityError",
    "ListError",
    "StorageError",
    "UploadError",
    "check_health_with_timeout",
]

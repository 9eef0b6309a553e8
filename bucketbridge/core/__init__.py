"""
Core building blocks shared by every bucketbridge module:
configuration, environment handling, logging and engine exceptions.
"""

from bucketbridge.core.exceptions import (
    BucketBridgeError,
    ConfigurationError,
    InvalidStateTransitionError,
    MissingDependencyError,
    RunInProgressError,
)
from bucketbridge.core.logger import get_logger, set_logger

__all__ = [
    "BucketBridgeError",
    "ConfigurationError",
    "InvalidStateTransitionError",
    "MissingDependencyError",
    "RunInProgressError",
    "get_logger",
    "set_logger",
]

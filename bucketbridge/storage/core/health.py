"""
Health check infrastructure for storage backends.

The connectivity probe reports through HealthCheckResult: HEALTHY means
the backend is available, UNHEALTHY carries the reason it is not.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class HealthStatus(Enum):
    """Storage health status."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """
    Result of a health check operation.

    Attributes:
        status: Overall health status
        latency_ms: Time taken for health check in milliseconds
        message: Human-readable status message (the reason when unhealthy)
        details: Additional backend-specific details
        checked_at: Timestamp of the check
    """

    status: HealthStatus
    latency_ms: float = 0.0
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def available(cls, latency_ms: float = 0.0, message: str = "ok", **details) -> "HealthCheckResult":
        return cls(HealthStatus.HEALTHY, latency_ms=latency_ms, message=message, details=details)

    @classmethod
    def unavailable(cls, reason: str, latency_ms: float = 0.0, **details) -> "HealthCheckResult":
        return cls(HealthStatus.UNHEALTHY, latency_ms=latency_ms, message=reason, details=details)

    @property
    def is_available(self) -> bool:
        """True when operations against the backend may proceed."""
        return self.status == HealthStatus.HEALTHY

    @property
    def reason(self) -> str | None:
        """Why the backend is unavailable, None when it is available."""
        return None if self.is_available else self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "status": self.status.value,
            "is_available": self.is_available,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message,
            "details": self.details,
            "checked_at": self.checked_at.isoformat(),
        }


async def check_health_with_timeout(
    check: Callable[[], Awaitable[HealthCheckResult]],
    timeout_seconds: float = 5.0,
) -> HealthCheckResult:
    """
    Run a health check with timeout protection.

    Never raises: a timeout or an exception becomes an UNHEALTHY result.

    Args:
        check: Zero-argument coroutine function performing the check
        timeout_seconds: Maximum time to wait
    """
    start = time.perf_counter()

    try:
        return await asyncio.wait_for(check(), timeout=timeout_seconds)
    except TimeoutError:
        elapsed_ms = (time.perf_counter() - start) * 1000
        return HealthCheckResult.unavailable(
            f"Health check timed out after {timeout_seconds}s",
            latency_ms=elapsed_ms,
        )
    except Exception as e:
        elapsed_ms = (time.perf_counter() - start) * 1000
        return HealthCheckResult.unavailable(
            getattr(e, "message", None) or str(e) or type(e).__name__,
            latency_ms=elapsed_ms,
            error_type=type(e).__name__,
        )

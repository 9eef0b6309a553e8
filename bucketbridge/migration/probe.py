"""
Connectivity probe.

Before listing or migrating, the self-hosted side is asked for a single
object. Anything but a clean answer marks the store unavailable and the
reason is reported to the operator. The managed store is not probed.
"""

from bucketbridge.core.logger import get_logger
from bucketbridge.storage.base import StorageBackend
from bucketbridge.storage.core import ConnectivityError, HealthCheckResult, check_health_with_timeout
from bucketbridge.storage.types import BackendKind

logger = get_logger(__name__)

DEFAULT_PROBE_TIMEOUT = 5.0


class ConnectivityProbe:
    def __init__(self, backend: StorageBackend, timeout_seconds: float = DEFAULT_PROBE_TIMEOUT):
        self.backend = backend
        self.timeout_seconds = timeout_seconds

    async def check(self) -> HealthCheckResult:
        """Probe the backend. Never raises."""
        if self.backend.kind is not BackendKind.SELF_HOSTED:
            return HealthCheckResult.available(message="not probed", backend=self.backend.name)

        result = await check_health_with_timeout(self.backend.probe, self.timeout_seconds)
        if result.is_available:
            logger.debug(f"{self.backend.name} reachable ({result.latency_ms:.0f}ms)")
        else:
            logger.warning(f"{self.backend.name} unavailable: {result.reason}")
        return result

    async def require_available(self) -> HealthCheckResult:
        """
        Probe and fail loudly.

        Raises:
            ConnectivityError: The backend is unavailable
        """
        result = await self.check()
        if not result.is_available:
            raise ConnectivityError(result.reason or "unavailable", backend=self.backend.name)
        return result

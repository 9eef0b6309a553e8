"""
Prometheus metrics for transfer runs.

Quick Start:
    >>> from bucketbridge.monitoring.prometheus import MigrationMetrics, start_metrics_server
    >>>
    >>> start_metrics_server(port=8000)
    >>> metrics = MigrationMetrics()
    >>> engine = TransferEngine(source, destination, locations, metrics=metrics)

Requirements:
    pip install bucketbridge[metrics]
"""

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from bucketbridge.migration.types import TransferItem

# Check if prometheus_client is installed
try:
    from prometheus_client import REGISTRY, Counter, Gauge, Histogram, start_http_server

    PROMETHEUS_AVAILABLE = True
except ImportError:  # pragma: no cover
    PROMETHEUS_AVAILABLE = False
    REGISTRY: Any = None  # type: ignore[no-redef]
    Counter: Any = None  # type: ignore[no-redef]
    Gauge: Any = None  # type: ignore[no-redef]
    Histogram: Any = None  # type: ignore[no-redef]
    start_http_server: Any = None  # type: ignore[no-redef]


logger = logging.getLogger(__name__)


class MigrationMetrics:
    """
    Prometheus metrics collector for transfer runs.

    Exposes the following metrics:
        - {prefix}_items_total: Counter of finished items by direction and status
        - {prefix}_item_duration_seconds: Histogram of per-item copy time
        - {prefix}_bytes_total: Counter of bytes written to the destination
        - {prefix}_active_runs: Gauge of runs in progress

    Pass a dedicated ``CollectorRegistry`` to keep several collectors apart
    (one per test, for instance).
    """

    def __init__(self, prefix: str = "bucketbridge", registry: Any = None):
        if not PROMETHEUS_AVAILABLE:
            logger.warning(
                "prometheus-client not installed. Metrics will not be collected. "
                "Install with: pip install bucketbridge[metrics]"
            )
            self._enabled = False
            return

        self._enabled = True
        self._prefix = prefix
        registry = registry if registry is not None else REGISTRY

        self._items_total = Counter(
            f"{prefix}_items_total",
            "Transfer items finished",
            ["direction", "status"],
            registry=registry,
        )

        self._item_duration = Histogram(
            f"{prefix}_item_duration_seconds",
            "Time to fetch, check and upload one object",
            ["direction"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=registry,
        )

        self._bytes_total = Counter(
            f"{prefix}_bytes_total",
            "Bytes written to the destination",
            ["direction"],
            registry=registry,
        )

        self._active_runs = Gauge(
            f"{prefix}_active_runs",
            "Transfer runs in progress",
            registry=registry,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def run_started(self) -> None:
        if not self._enabled:
            return
        self._active_runs.inc()

    def run_finished(self) -> None:
        if not self._enabled:
            return
        self._active_runs.dec()

    def record_item(self, direction: str, item: "TransferItem", size_bytes: int = 0) -> None:
        """
        Record a finished item.

        Args:
            direction: Direction value of the run
            item: The item, in a terminal state
            size_bytes: Bytes uploaded (0 on failure)
        """
        if not self._enabled:
            return

        self._items_total.labels(direction=direction, status=item.status.value).inc()
        if item.duration_seconds is not None:
            self._item_duration.labels(direction=direction).observe(item.duration_seconds)
        if size_bytes:
            self._bytes_total.labels(direction=direction).inc(size_bytes)


def start_metrics_server(port: int = 8000, addr: str = "0.0.0.0") -> None:
    """
    Start a Prometheus HTTP metrics server.

    Example:
        >>> start_metrics_server(port=8000)
        >>> # Metrics available at http://localhost:8000/metrics
    """
    if not PROMETHEUS_AVAILABLE:
        logger.error(
            "Cannot start metrics server: prometheus-client not installed. "
            "Install with: pip install bucketbridge[metrics]"
        )
        return

    start_http_server(port, addr)
    logger.info(f"Prometheus metrics server started on port {port}")


def is_prometheus_available() -> bool:
    """Check if prometheus-client is installed."""
    return PROMETHEUS_AVAILABLE

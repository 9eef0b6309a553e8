"""
Transfer monitoring and observability utilities

Quick Start:
    # Structured JSON logs with run context
    >>> from bucketbridge.core.logger import configure_default_logging
    >>> configure_default_logging(json_output=True)

    # Prometheus metrics (requires prometheus-client)
    >>> from bucketbridge.monitoring.prometheus import MigrationMetrics, start_metrics_server
    >>> start_metrics_server(port=8000)
    >>> metrics = MigrationMetrics()
"""

from .logging import (
    MigrationContextFilter,
    MigrationJsonFormatter,
    clear_run_context,
    run_context,
    set_item_context,
    set_run_context,
)
from .metrics import TransferStats
from .prometheus import MigrationMetrics, is_prometheus_available, start_metrics_server

__all__ = [
    "MigrationContextFilter",
    "MigrationJsonFormatter",
    "MigrationMetrics",
    "TransferStats",
    "clear_run_context",
    "is_prometheus_available",
    "run_context",
    "set_item_context",
    "set_run_context",
    "start_metrics_server",
]

"""
Tests for Prometheus transfer metrics and in-process stats.
"""

from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from bucketbridge.migration.state_machine import TransferStateMachine
from bucketbridge.migration.types import TransferItem
from bucketbridge.monitoring.metrics import TransferStats
from bucketbridge.monitoring.prometheus import (
    PROMETHEUS_AVAILABLE,
    MigrationMetrics,
    is_prometheus_available,
    start_metrics_server,
)
from bucketbridge.storage.types import ObjectDescriptor

DIRECTION = "self-hosted-to-managed"


def finished_item(name: str, success: bool = True) -> TransferItem:
    item = TransferItem(descriptor=ObjectDescriptor(name=name))
    sm = TransferStateMachine()
    sm.start(item)
    if success:
        sm.mark_success(item)
    else:
        sm.mark_error(item, "boom")
    return item


@pytest.fixture
def registry():
    """Each test gets its own registry so metric names never collide."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return MigrationMetrics(prefix="test_bb", registry=registry)


class TestMigrationMetrics:
    def test_prometheus_is_available(self):
        """prometheus_client is installed with the test extra."""
        assert PROMETHEUS_AVAILABLE is True
        assert is_prometheus_available() is True

    def test_enabled(self, metrics):
        assert metrics.enabled is True

    def test_record_items(self, metrics, registry):
        metrics.record_item(DIRECTION, finished_item("a.jpg"), size_bytes=100)
        metrics.record_item(DIRECTION, finished_item("b.jpg"), size_bytes=50)
        metrics.record_item(DIRECTION, finished_item("c.jpg", success=False))

        labels = {"direction": DIRECTION}
        assert registry.get_sample_value("test_bb_items_total", {**labels, "status": "success"}) == 2
        assert registry.get_sample_value("test_bb_items_total", {**labels, "status": "error"}) == 1
        assert registry.get_sample_value("test_bb_bytes_total", labels) == 150
        assert registry.get_sample_value("test_bb_item_duration_seconds_count", labels) == 3

    def test_active_runs(self, metrics, registry):
        metrics.run_started()
        metrics.run_started()
        metrics.run_finished()

        assert registry.get_sample_value("test_bb_active_runs") == 1

    def test_disabled_without_prometheus(self):
        with patch("bucketbridge.monitoring.prometheus.PROMETHEUS_AVAILABLE", False):
            disabled = MigrationMetrics()

        assert disabled.enabled is False
        # Every recording call is a no-op
        disabled.run_started()
        disabled.record_item(DIRECTION, finished_item("a.jpg"), 10)
        disabled.run_finished()

    def test_start_server(self):
        with patch("bucketbridge.monitoring.prometheus.start_http_server") as mock_start:
            start_metrics_server(port=9105)

        mock_start.assert_called_once_with(9105, "0.0.0.0")

    def test_start_server_without_prometheus(self):
        with patch("bucketbridge.monitoring.prometheus.PROMETHEUS_AVAILABLE", False):
            with patch("bucketbridge.monitoring.prometheus.start_http_server") as mock_start:
                start_metrics_server()

        mock_start.assert_not_called()


class TestTransferStats:
    """Tests for the in-process TransferStats collector."""

    def test_initial(self):
        stats = TransferStats()

        assert stats.active_runs == 0
        assert stats.get_metrics()["success_rate"] == "0.00%"

    def test_counts(self):
        stats = TransferStats()
        stats.run_started()
        stats.record_item(DIRECTION, finished_item("a.jpg"), 10)
        stats.record_item(DIRECTION, finished_item("b.jpg"), 20)
        stats.record_item("managed-to-self-hosted", finished_item("c.jpg", success=False))

        data = stats.get_metrics()
        assert stats.active_runs == 1
        assert data["items_succeeded"] == 2
        assert data["items_failed"] == 1
        assert data["bytes_written"] == 30
        assert data["success_rate"] == "66.67%"
        assert data["by_direction"]["managed-to-self-hosted"] == {"success": 0, "error": 1}

        stats.run_finished()
        assert stats.active_runs == 0

"""
Tests for bucketbridge.storage.core health checks and bucketbridge.storage.types.
"""

import asyncio
from datetime import UTC, datetime

import pytest

from bucketbridge.storage.core import HealthCheckResult, HealthStatus, check_health_with_timeout
from bucketbridge.storage.core.errors import ConnectivityError
from bucketbridge.storage.types import FetchedObject, ObjectDescriptor, parse_timestamp


class TestHealthCheckResult:
    """Tests for HealthCheckResult."""

    def test_available(self):
        result = HealthCheckResult.available(latency_ms=12.5, backend="relay")

        assert result.status == HealthStatus.HEALTHY
        assert result.is_available is True
        assert result.reason is None
        assert result.details == {"backend": "relay"}

    def test_unavailable(self):
        result = HealthCheckResult.unavailable("connection refused")

        assert result.status == HealthStatus.UNHEALTHY
        assert result.is_available is False
        assert result.reason == "connection refused"

    def test_unknown_is_not_available(self):
        assert HealthCheckResult(HealthStatus.UNKNOWN).is_available is False

    def test_to_dict(self):
        data = HealthCheckResult.unavailable("down", latency_ms=1.234).to_dict()

        assert data["status"] == "unhealthy"
        assert data["is_available"] is False
        assert data["latency_ms"] == 1.23
        assert data["message"] == "down"
        assert "checked_at" in data


class TestCheckHealthWithTimeout:
    """Tests for check_health_with_timeout."""

    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        async def check():
            return HealthCheckResult.available()

        result = await check_health_with_timeout(check)
        assert result.is_available is True

    @pytest.mark.asyncio
    async def test_timeout_becomes_unavailable(self):
        async def check():
            await asyncio.sleep(1)
            return HealthCheckResult.available()

        result = await check_health_with_timeout(check, timeout_seconds=0.01)

        assert result.is_available is False
        assert "timed out" in result.reason

    @pytest.mark.asyncio
    async def test_exception_becomes_unavailable(self):
        async def check():
            raise ConnectivityError("relay unreachable", backend="relay")

        result = await check_health_with_timeout(check)

        assert result.is_available is False
        assert result.reason == "relay unreachable"
        assert result.details["error_type"] == "ConnectivityError"

    @pytest.mark.asyncio
    async def test_exception_without_message(self):
        async def check():
            raise RuntimeError

        result = await check_health_with_timeout(check)
        assert result.reason == "RuntimeError"


class TestObjectDescriptor:
    """Tests for ObjectDescriptor."""

    def test_from_relay_dict(self):
        descriptor = ObjectDescriptor.from_dict(
            {
                "name": "products/a.jpg",
                "size": "2048",
                "lastModified": "2024-05-01T10:00:00Z",
                "url": "https://minio.example.com/site/products/a.jpg",
            }
        )

        assert descriptor.name == "products/a.jpg"
        assert descriptor.size_bytes == 2048
        assert descriptor.last_modified == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
        assert descriptor.public_url.endswith("products/a.jpg")

    def test_from_dict_tolerates_missing_fields(self):
        descriptor = ObjectDescriptor.from_dict({"name": "a.jpg", "size": None, "lastModified": ""})

        assert descriptor.size_bytes == 0
        assert descriptor.last_modified is None
        assert descriptor.public_url == ""

    def test_from_dict_requires_name(self):
        with pytest.raises(KeyError):
            ObjectDescriptor.from_dict({"size": 1})

    def test_to_dict(self):
        data = ObjectDescriptor(name="a.jpg", size_bytes=3).to_dict()
        assert data == {"name": "a.jpg", "size": 3, "lastModified": "", "url": ""}

    def test_is_hashable(self):
        assert len({ObjectDescriptor("a.jpg"), ObjectDescriptor("a.jpg")}) == 1


class TestParseTimestamp:
    def test_values(self):
        now = datetime.now(UTC)
        assert parse_timestamp(now) is now
        assert parse_timestamp(None) is None
        assert parse_timestamp("not a date") is None
        assert parse_timestamp("2024-01-02T03:04:05+00:00").year == 2024


def test_fetched_object_repr_hides_payload():
    fetched = FetchedObject(name="a.jpg", payload=b"\x89PNG" * 100, content_type="image/png")
    assert "PNG" not in repr(fetched)

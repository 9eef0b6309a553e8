"""
Tests for ObjectLister and ConnectivityProbe.
"""

import asyncio

import pytest

from bucketbridge.migration import ConnectivityProbe, ObjectLister
from bucketbridge.storage.core import ConnectivityError, HealthCheckResult, ListError


class TestObjectLister:
    @pytest.mark.asyncio
    async def test_lists_in_backend_order(self, self_hosted):
        self_hosted.seed_many("posts", ["posts/z.jpg", "posts/a.jpg"])

        descriptors = await ObjectLister(self_hosted).list("posts")

        assert [d.name for d in descriptors] == ["posts/z.jpg", "posts/a.jpg"]

    @pytest.mark.asyncio
    async def test_limit_is_passed_through(self, self_hosted):
        self_hosted.seed_many("posts", ["posts/1.jpg", "posts/2.jpg", "posts/3.jpg"])

        assert len(await ObjectLister(self_hosted).list("posts", limit=2)) == 2

    @pytest.mark.asyncio
    async def test_list_error_propagates(self, self_hosted):
        self_hosted.list_failures["posts"] = ListError("relay down", location="posts")

        with pytest.raises(ListError, match="relay down"):
            await ObjectLister(self_hosted).list("posts")

    @pytest.mark.asyncio
    async def test_other_errors_become_list_errors(self, managed):
        managed.list_failures["blog-images"] = RuntimeError("socket closed")

        with pytest.raises(ListError, match="socket closed") as exc_info:
            await ObjectLister(managed).list("blog-images")

        assert exc_info.value.location == "blog-images"
        assert exc_info.value.backend == "managed"


class TestConnectivityProbe:
    """Tests for the self-hosted connectivity probe."""

    @pytest.mark.asyncio
    async def test_available(self, self_hosted):
        result = await ConnectivityProbe(self_hosted).check()

        assert result.is_available is True
        assert self_hosted.calls_to("probe") == [""]

    @pytest.mark.asyncio
    async def test_unavailable(self, self_hosted):
        self_hosted.available = False

        result = await ConnectivityProbe(self_hosted).check()

        assert result.is_available is False
        assert "unavailable" in result.reason

    @pytest.mark.asyncio
    async def test_managed_is_not_probed(self, managed):
        result = await ConnectivityProbe(managed).check()

        assert result.is_available is True
        assert managed.calls == []

    @pytest.mark.asyncio
    async def test_timeout(self, self_hosted, monkeypatch):
        async def slow_probe():
            await asyncio.sleep(1)
            return HealthCheckResult.available()

        monkeypatch.setattr(self_hosted, "probe", slow_probe)

        result = await ConnectivityProbe(self_hosted, timeout_seconds=0.01).check()

        assert result.is_available is False
        assert "timed out" in result.reason

    @pytest.mark.asyncio
    async def test_require_available_raises(self, self_hosted):
        self_hosted.available = False

        with pytest.raises(ConnectivityError, match="marked unavailable"):
            await ConnectivityProbe(self_hosted).require_available()

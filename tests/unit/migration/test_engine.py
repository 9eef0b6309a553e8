"""
Tests for TransferEngine.
"""

import asyncio

import pytest

from bucketbridge.core.exceptions import ConfigurationError, RunInProgressError
from bucketbridge.migration import (
    CancelToken,
    Direction,
    RunOutcome,
    SelectionSet,
    TransferConfig,
    TransferEngine,
    TransferStatus,
)
from bucketbridge.monitoring.metrics import TransferStats
from bucketbridge.storage.backends.memory import InMemoryBackend
from bucketbridge.storage.core import FetchError, UploadError
from bucketbridge.storage.types import BackendKind, FetchedObject

TO_MANAGED = Direction.SELF_HOSTED_TO_MANAGED
TO_SELF_HOSTED = Direction.MANAGED_TO_SELF_HOSTED


async def select_all(backend, location) -> SelectionSet:
    selection = SelectionSet()
    selection.load(location, await backend.list(location))
    selection.select_all()
    backend.calls.clear()
    return selection


@pytest.fixture
def engine(self_hosted, managed, locations, recorder):
    return TransferEngine(self_hosted, managed, locations, listener=recorder)


@pytest.fixture
def products(self_hosted):
    """The products folder: two images and one page served in place of an image."""
    self_hosted.seed("products", "products/a.jpg", b"\xff\xd8 jpeg a", "image/jpeg")
    self_hosted.seed("products", "products/b.png", b"<html>challenge</html>", "image/png")
    self_hosted.seed("products", "products/c.jpg", b"\xff\xd8 jpeg c", "image/jpeg")
    self_hosted.declared_types["products/b.png"] = "text/html"
    return self_hosted


class TestTransferRun:
    """One run over a mixed selection."""

    @pytest.mark.asyncio
    async def test_mixed_selection(self, engine, products, managed):
        selection = await select_all(products, "products")

        result = await engine.run(selection, "products", TO_MANAGED)

        assert result.outcome == RunOutcome.COMPLETED
        assert result.summary.success_count == 2
        assert result.summary.error_count == 1
        assert result.summary.success is False

        run = result.run
        assert run.destination_location == "product-images"
        assert run.item("products/a.jpg").status == TransferStatus.SUCCESS
        assert run.item("products/c.jpg").status == TransferStatus.SUCCESS

        failed = run.item("products/b.png")
        assert failed.status == TransferStatus.ERROR
        assert "text/html" in failed.error_message
        assert "reverse proxy" in failed.error_message

        stored = managed.objects("product-images")
        assert sorted(stored) == ["products/a.jpg", "products/c.jpg"]
        assert stored["products/a.jpg"].payload == b"\xff\xd8 jpeg a"
        assert stored["products/a.jpg"].content_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_every_item_ends_terminal(self, engine, products):
        selection = await select_all(products, "products")

        result = await engine.run(selection, "products", TO_MANAGED)

        assert all(item.is_terminal for item in result.run.items)
        assert result.summary.total == len(selection)
        assert result.run.progress_percent == 100
        assert engine.is_running is False

    @pytest.mark.asyncio
    async def test_items_are_processed_in_selection_order(self, engine, products):
        selection = await select_all(products, "products")

        await engine.run(selection, "products", TO_MANAGED)

        assert products.calls_to("fetch") == ["products/a.jpg", "products/b.png", "products/c.jpg"]

    @pytest.mark.asyncio
    async def test_rerun_overwrites(self, engine, products, managed):
        selection = await select_all(products, "products")

        await engine.run(selection, "products", TO_MANAGED)
        products.seed("products", "products/a.jpg", b"new bytes", "image/jpeg")
        second = await engine.run(selection, "products", TO_MANAGED)

        stored = managed.objects("product-images")
        assert second.summary.success_count == 2
        assert len(stored) == 2
        assert stored["products/a.jpg"].payload == b"new bytes"

    @pytest.mark.asyncio
    async def test_generic_type_inferred_from_extension(self, engine, self_hosted, managed):
        self_hosted.seed("hero", "hero/banner.png", b"\x89PNG", "application/octet-stream")
        selection = await select_all(self_hosted, "hero")

        result = await engine.run(selection, "hero", TO_MANAGED)

        assert result.run.item("hero/banner.png").content_type == "image/png"
        assert managed.objects("hero-section")["hero/banner.png"].content_type == "image/png"

    @pytest.mark.asyncio
    async def test_upload_failure_does_not_stop_the_run(self, engine, products, managed):
        products.declared_types.clear()
        managed.put_failures["products/a.jpg"] = RuntimeError("payload too large")
        selection = await select_all(products, "products")

        result = await engine.run(selection, "products", TO_MANAGED)

        assert result.run.item("products/a.jpg").error_message == "payload too large"
        assert result.summary.success_count == 2

    @pytest.mark.asyncio
    async def test_malformed_payload_is_not_written(self, engine, self_hosted, managed, monkeypatch):
        async def broken_fetch(name, location=None):
            return FetchedObject(name=name, payload="%%%", content_type="image/jpeg", encoding="base64")

        self_hosted.seed("posts", "posts/a.jpg", b"x", "image/jpeg")
        selection = await select_all(self_hosted, "posts")
        monkeypatch.setattr(self_hosted, "fetch", broken_fetch)

        result = await engine.run(selection, "posts", TO_MANAGED)

        assert "not valid base64" in result.run.item("posts/a.jpg").error_message
        assert managed.objects("blog-images") == {}

    @pytest.mark.asyncio
    async def test_reverse_direction(self, engine, self_hosted, managed):
        managed.seed("blog-images", "cover.png", b"\x89PNG", "image/png")
        selection = await select_all(managed, "blog-images")

        result = await engine.run(selection, "blog-images", TO_SELF_HOSTED)

        assert result.run.source == "managed"
        assert result.run.destination == "minio"
        assert managed.calls_to("fetch") == ["cover.png"]
        assert self_hosted.objects("posts")["cover.png"].payload == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_plain_names_are_accepted(self, engine, products, managed):
        result = await engine.run(["products/a.jpg", "products/a.jpg"], "products", "to-managed")

        assert result.run.total == 1
        assert list(managed.objects("product-images")) == ["products/a.jpg"]


class TestRunPreconditions:
    @pytest.mark.asyncio
    async def test_nothing_selected_makes_no_calls(self, engine, self_hosted, managed, recorder):
        result = await engine.run(SelectionSet(), "products", TO_MANAGED)

        assert result.outcome == RunOutcome.NOTHING_SELECTED
        assert result.nothing_selected is True
        assert result.run is None
        assert self_hosted.calls == []
        assert managed.calls == []
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_no_location(self, engine, products, managed):
        selection = await select_all(products, "products")

        with pytest.raises(ConfigurationError, match="No location selected"):
            await engine.run(selection, "", TO_MANAGED)

        assert products.calls == []
        assert managed.calls == []
        assert engine.is_running is False

    @pytest.mark.asyncio
    async def test_selection_from_another_location_is_rejected(self, engine, products, managed):
        products.seed("posts", "posts/cover.jpg", b"\xff\xd8", "image/jpeg")
        selection = await select_all(products, "products")

        with pytest.raises(ConfigurationError, match="belongs to 'products'"):
            await engine.run(selection, "posts", TO_MANAGED)

        assert products.calls == []
        assert managed.calls == []
        assert managed.objects("blog-images") == {}
        assert engine.is_running is False

    @pytest.mark.asyncio
    async def test_unknown_location(self, engine, products):
        with pytest.raises(ConfigurationError, match="Unknown folder"):
            await engine.run(["videos/a.mp4"], "videos", TO_MANAGED)

    def test_backends_must_differ(self, self_hosted):
        other = InMemoryBackend(kind=BackendKind.SELF_HOSTED)

        with pytest.raises(ConfigurationError, match="both"):
            TransferEngine(self_hosted, other)

    @pytest.mark.asyncio
    async def test_second_run_is_rejected(self, engine, products, monkeypatch):
        release = asyncio.Event()
        real_fetch = products.fetch

        async def blocking_fetch(name, location=None):
            await release.wait()
            return await real_fetch(name, location=location)

        monkeypatch.setattr(products, "fetch", blocking_fetch)
        selection = await select_all(products, "products")

        first = asyncio.create_task(engine.run(selection, "products", TO_MANAGED))
        while not engine.is_running:
            await asyncio.sleep(0)

        with pytest.raises(RunInProgressError) as exc_info:
            await engine.run(selection, "products", TO_MANAGED)
        assert exc_info.value.run_id == engine.current_run.run_id

        release.set()
        result = await first
        assert result.outcome == RunOutcome.COMPLETED
        assert engine.current_run is None


class TestProgressEvents:
    """Listener events and derived progress."""

    @pytest.mark.asyncio
    async def test_progress_is_monotonic_and_ends_at_100(self, engine, products, recorder):
        selection = await select_all(products, "products")

        await engine.run(selection, "products", TO_MANAGED)

        progress = recorder.progress
        assert progress == sorted(progress)
        assert progress[-1] == 100
        assert all(p < 100 for p in progress[:-1])

    @pytest.mark.asyncio
    async def test_each_item_emits_start_and_finish(self, engine, products, recorder):
        selection = await select_all(products, "products")

        await engine.run(selection, "products", TO_MANAGED)

        events = recorder.for_item("products/b.png")
        assert [(e.old_status, e.new_status) for e in events] == [
            (TransferStatus.PENDING, TransferStatus.COPYING),
            (TransferStatus.COPYING, TransferStatus.ERROR),
        ]
        assert events[-1].error_message is not None
        assert len({e.run_id for e in recorder.events}) == 1

    @pytest.mark.asyncio
    async def test_listener_failure_is_ignored(self, self_hosted, managed, products):
        def broken_listener(event):
            raise RuntimeError("display crashed")

        engine = TransferEngine(self_hosted, managed, listener=broken_listener)
        selection = await select_all(products, "products")

        result = await engine.run(selection, "products", TO_MANAGED)

        assert result.summary.success_count == 2


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_between_items(self, self_hosted, managed, products):
        token = CancelToken()

        def cancel_after_first(event):
            if event.new_status == TransferStatus.SUCCESS:
                token.cancel()

        engine = TransferEngine(self_hosted, managed, listener=cancel_after_first)
        selection = await select_all(products, "products")

        result = await engine.run(selection, "products", TO_MANAGED, cancel_token=token)

        assert result.outcome == RunOutcome.CANCELLED
        assert result.summary.success_count == 1
        assert result.summary.cancelled_count == 2
        assert result.summary.error_count == 2
        assert result.run.item("products/b.png").was_cancelled
        assert products.calls_to("fetch") == ["products/a.jpg"]
        assert all(item.is_terminal for item in result.run.items)

    @pytest.mark.asyncio
    async def test_engine_cancel(self, self_hosted, managed, products):
        engine = TransferEngine(self_hosted, managed)

        def cancel_on_start(event):
            if event.new_status == TransferStatus.COPYING:
                engine.cancel()

        engine.listener = cancel_on_start
        selection = await select_all(products, "products")

        result = await engine.run(selection, "products", TO_MANAGED)

        # The item already copying finishes
        assert result.run.items[0].status == TransferStatus.SUCCESS
        assert result.summary.cancelled_count == 2

    def test_cancel_without_run_is_a_no_op(self, engine):
        engine.cancel()
        assert engine.is_running is False


class TestRetriesAndConcurrency:
    @pytest.mark.asyncio
    async def test_transport_failure_is_retried(self, self_hosted, managed, monkeypatch):
        self_hosted.seed("hero", "hero/a.jpg", b"x", "image/jpeg")
        real_fetch = self_hosted.fetch
        failures = [FetchError("connection reset", name="hero/a.jpg")]

        async def flaky_fetch(name, location=None):
            if failures:
                raise failures.pop()
            return await real_fetch(name, location=location)

        monkeypatch.setattr(self_hosted, "fetch", flaky_fetch)
        config = TransferConfig(max_retries=2, retry_delay_seconds=0)
        engine = TransferEngine(self_hosted, managed, config=config)

        result = await engine.run(["hero/a.jpg"], "hero", TO_MANAGED)

        item = result.run.item("hero/a.jpg")
        assert item.status == TransferStatus.SUCCESS
        assert item.attempts == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, self_hosted, managed):
        self_hosted.seed("hero", "hero/a.jpg", b"x", "image/jpeg")
        managed.put_failures["hero/a.jpg"] = UploadError("service unavailable")
        engine = TransferEngine(
            self_hosted, managed, config=TransferConfig(max_retries=1, retry_delay_seconds=0)
        )

        result = await engine.run(["hero/a.jpg"], "hero", TO_MANAGED)

        item = result.run.item("hero/a.jpg")
        assert item.status == TransferStatus.ERROR
        assert item.error_message == "service unavailable"
        assert item.attempts == 2

    @pytest.mark.asyncio
    async def test_integrity_failure_is_not_retried(self, self_hosted, managed, products):
        engine = TransferEngine(
            self_hosted, managed, config=TransferConfig(max_retries=3, retry_delay_seconds=0)
        )

        result = await engine.run(["products/b.png"], "products", TO_MANAGED)

        assert result.run.item("products/b.png").attempts == 1
        assert products.calls_to("fetch") == ["products/b.png"]

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self, self_hosted, managed, monkeypatch):
        names = [f"projects/{i}.jpg" for i in range(8)]
        self_hosted.seed_many("projects", names)
        real_fetch = self_hosted.fetch
        in_flight = 0
        peak = 0

        async def slow_fetch(name, location=None):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await real_fetch(name, location=location)

        monkeypatch.setattr(self_hosted, "fetch", slow_fetch)
        engine = TransferEngine(self_hosted, managed, config=TransferConfig(max_concurrency=3))

        result = await engine.run(names, "projects", TO_MANAGED)

        assert result.summary.success_count == 8
        assert 1 < peak <= 3
        assert len(managed.objects("project-images")) == 8

    def test_invalid_config(self):
        with pytest.raises(ConfigurationError):
            TransferConfig(max_concurrency=0)
        with pytest.raises(ConfigurationError):
            TransferConfig(max_retries=-1)


class TestMetricsCollection:
    @pytest.mark.asyncio
    async def test_stats_are_recorded(self, self_hosted, managed, products):
        stats = TransferStats()
        engine = TransferEngine(self_hosted, managed, metrics=stats)
        selection = await select_all(products, "products")

        await engine.run(selection, "products", TO_MANAGED)

        data = stats.get_metrics()
        assert data["runs_started"] == 1
        assert stats.active_runs == 0
        assert data["items_succeeded"] == 2
        assert data["items_failed"] == 1
        assert data["bytes_written"] == len(b"\xff\xd8 jpeg a") + len(b"\xff\xd8 jpeg c")
        assert data["by_direction"]["self-hosted-to-managed"] == {"success": 2, "error": 1}

    @pytest.mark.asyncio
    async def test_broken_collector_is_ignored(self, self_hosted, managed, products):
        class BrokenStats(TransferStats):
            def record_item(self, direction, item, size_bytes=0):
                raise RuntimeError("collector down")

        engine = TransferEngine(self_hosted, managed, metrics=BrokenStats())

        result = await engine.run(["products/a.jpg"], "products", TO_MANAGED)

        assert result.summary.success_count == 1

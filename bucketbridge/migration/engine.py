"""
Transfer Engine - copy selected objects between the two stores.

One run copies the current selection from one location to the location the
mapping table pairs it with. Every item is fetched, checked, decoded and
upserted independently; a failing item is recorded and the run carries on.

Usage:
    >>> from bucketbridge.migration import Direction, LocationMap, TransferEngine
    >>>
    >>> engine = TransferEngine(self_hosted, managed, LocationMap.default())
    >>> result = await engine.run(selection, "products", Direction.SELF_HOSTED_TO_MANAGED)
    >>>
    >>> print(f"{result.summary.success_count} copied, {result.summary.error_count} failed")
"""

import asyncio
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from bucketbridge.core.exceptions import ConfigurationError, RunInProgressError
from bucketbridge.core.logger import get_logger
from bucketbridge.migration.locations import Direction, LocationMap
from bucketbridge.migration.mime import decode_payload, guard_integrity, infer_content_type
from bucketbridge.migration.selection import SelectionSet
from bucketbridge.migration.state_machine import TransferStateMachine
from bucketbridge.migration.types import (
    CancelToken,
    RunOutcome,
    TransferConfig,
    TransferEvent,
    TransferItem,
    TransferListener,
    TransferResult,
    TransferRun,
    TransferStatus,
)
from bucketbridge.monitoring.logging import clear_run_context, set_item_context, set_run_context
from bucketbridge.storage.base import StorageBackend
from bucketbridge.storage.core import IntegrityError, StorageError
from bucketbridge.storage.types import ObjectDescriptor

logger = get_logger(__name__)


def _error_message(error: Exception) -> str:
    if isinstance(error, StorageError):
        return error.message
    return str(error) or type(error).__name__


class TransferEngine:
    """
    Copies a selection of objects from one backend to the other.

    The engine holds both backends; the direction passed to ``run`` decides
    which one is read from. Only one run may be active at a time.

    Example:
        >>> engine = TransferEngine(relay, supabase, LocationMap.default(), listener=print)
        >>> result = await engine.run(selection, "hero", Direction.SELF_HOSTED_TO_MANAGED)
        >>> result.run.item("hero/banner.jpg").status
        <TransferStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        source: StorageBackend,
        destination: StorageBackend,
        locations: LocationMap | None = None,
        config: TransferConfig | None = None,
        listener: TransferListener | None = None,
        metrics: Any = None,
    ):
        """
        Initialize transfer engine.

        Args:
            source: One side of the migration
            destination: The other side
            locations: Folder/bucket mapping table (default table when omitted)
            config: Concurrency and retry settings
            listener: Called with every TransferEvent
            metrics: Optional collector (MigrationMetrics or TransferStats)
        """
        if source.kind == destination.kind:
            msg = f"Source and destination are both {source.kind.value} backends"
            raise ConfigurationError(msg)

        self.source = source
        self.destination = destination
        self.locations = locations or LocationMap.default()
        self.config = config or TransferConfig()
        self.listener = listener
        self.metrics = metrics

        self._active_run: TransferRun | None = None
        self._cancel_token: CancelToken | None = None

    @property
    def is_running(self) -> bool:
        return self._active_run is not None

    @property
    def current_run(self) -> TransferRun | None:
        return self._active_run

    def cancel(self) -> None:
        """Cancel the active run; items already copying are allowed to finish."""
        if self._cancel_token is not None:
            self._cancel_token.cancel()
            logger.info("Transfer cancellation requested")

    def backends_for(self, direction: Direction) -> tuple[StorageBackend, StorageBackend]:
        """(source, destination) for a direction."""
        if self.source.kind == direction.source_kind:
            return self.source, self.destination
        return self.destination, self.source

    async def run(
        self,
        selection: SelectionSet | Iterable[ObjectDescriptor | str],
        location: str | None,
        direction: Direction | str,
        cancel_token: CancelToken | None = None,
    ) -> TransferResult:
        """
        Copy every selected object.

        Args:
            selection: SelectionSet, or descriptors/names; snapshotted on entry
            location: Source folder (to managed) or source bucket (to self-hosted)
            direction: Which way to copy
            cancel_token: Checked before each item is started

        Returns:
            TransferResult; per-item failures are recorded on the run items

        Raises:
            RunInProgressError: Another run is active on this engine
            ConfigurationError: No location chosen, location not in the table,
                or the selection was loaded for another location
        """
        if self._active_run is not None:
            raise RunInProgressError(self._active_run.run_id)

        direction = Direction.parse(direction)
        descriptors = self._snapshot(selection)
        if not descriptors:
            logger.info("Nothing selected, transfer skipped")
            return TransferResult(outcome=RunOutcome.NOTHING_SELECTED)

        if (
            isinstance(selection, SelectionSet)
            and selection.location is not None
            and location
            and selection.location != location
        ):
            raise ConfigurationError(
                f"Selection belongs to {selection.location!r}, not {location!r}; "
                "reload the listing before transferring"
            )

        destination_location = self.locations.resolve(location, direction)
        source, destination = self.backends_for(direction)

        run = TransferRun(
            items=[TransferItem(descriptor=d) for d in descriptors],
            source=source.name,
            destination=destination.name,
            source_location=location,
            destination_location=destination_location,
            direction=direction,
        )
        token = cancel_token or CancelToken()
        self._active_run = run
        self._cancel_token = token

        set_run_context(run.run_id, direction.value, location, destination_location)
        if self.metrics is not None:
            self.metrics.run_started()

        logger.info(
            f"Starting transfer {run.run_id}: {run.total} item(s) "
            f"{source.name}:{location} -> {destination.name}:{destination_location}"
        )

        state_machine = TransferStateMachine(
            on_transition=lambda item, old, new: self._emit(run, item, old, new)
        )

        try:
            if self.config.max_concurrency > 1:
                await self._run_concurrent(run, state_machine, source, destination, token)
            else:
                for item in run.items:
                    await self._process_item(run, item, state_machine, source, destination, token)
        finally:
            run.finished_at = datetime.now(UTC)
            self._active_run = None
            self._cancel_token = None
            if self.metrics is not None:
                self.metrics.run_finished()
            clear_run_context()

        summary = run.summary()
        outcome = RunOutcome.CANCELLED if summary.cancelled_count else RunOutcome.COMPLETED

        logger.info(
            f"Transfer {run.run_id} {outcome.value}: {summary.success_count} copied, "
            f"{summary.error_count} failed"
            + (f" ({summary.cancelled_count} cancelled)" if summary.cancelled_count else "")
            + f" in {summary.duration_seconds:.2f}s"
        )

        return TransferResult(outcome=outcome, run=run, summary=summary)

    def _snapshot(
        self, selection: SelectionSet | Iterable[ObjectDescriptor | str]
    ) -> tuple[ObjectDescriptor, ...]:
        if isinstance(selection, SelectionSet):
            return selection.snapshot()

        descriptors: list[ObjectDescriptor] = []
        seen: set[str] = set()
        for entry in selection:
            descriptor = entry if isinstance(entry, ObjectDescriptor) else ObjectDescriptor(name=entry)
            if descriptor.name not in seen:
                seen.add(descriptor.name)
                descriptors.append(descriptor)
        return tuple(descriptors)

    async def _run_concurrent(
        self,
        run: TransferRun,
        state_machine: TransferStateMachine,
        source: StorageBackend,
        destination: StorageBackend,
        token: CancelToken,
    ) -> None:
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def worker(item: TransferItem) -> None:
            async with semaphore:
                await self._process_item(run, item, state_machine, source, destination, token)

        await asyncio.gather(*(worker(item) for item in run.items))

    async def _process_item(
        self,
        run: TransferRun,
        item: TransferItem,
        state_machine: TransferStateMachine,
        source: StorageBackend,
        destination: StorageBackend,
        token: CancelToken,
    ) -> None:
        """Take one item from PENDING to a terminal state. Never raises StorageError."""
        if token.is_cancelled:
            state_machine.cancel(item)
            self._record(run, item)
            return

        set_item_context(item.name)
        state_machine.start(item)

        size_bytes = 0
        try:
            size_bytes = await self._copy_with_retry(run, item, source, destination)
        except Exception as e:
            message = _error_message(e)
            logger.warning(
                f"Failed to copy {item.name!r}: {message}",
                extra={"item_name": item.name, "error_type": type(e).__name__},
            )
            state_machine.mark_error(item, message)
        else:
            state_machine.mark_success(item)
        finally:
            set_item_context(None)

        self._record(run, item, size_bytes)

    async def _copy_with_retry(
        self,
        run: TransferRun,
        item: TransferItem,
        source: StorageBackend,
        destination: StorageBackend,
    ) -> int:
        """Copy one item, retrying transport failures. Returns bytes written."""
        attempts = self.config.max_retries + 1
        for attempt in range(attempts):
            item.attempts += 1
            try:
                return await self._copy(run, item, source, destination)
            except IntegrityError:
                raise
            except StorageError as e:
                if attempt + 1 >= attempts:
                    raise
                logger.warning(
                    f"Attempt {attempt + 1}/{attempts} for {item.name!r} failed: {e.message}",
                    extra={"item_name": item.name, "attempt": attempt + 1},
                )
                await asyncio.sleep(self.config.retry_delay_seconds * (attempt + 1))
        return 0  # pragma: no cover

    async def _copy(
        self,
        run: TransferRun,
        item: TransferItem,
        source: StorageBackend,
        destination: StorageBackend,
    ) -> int:
        fetched = await source.fetch(item.name, location=run.source_location)
        guard_integrity(fetched, backend=source.name)

        content_type = infer_content_type(item.name, fetched.content_type)
        payload = decode_payload(fetched)

        item.content_type = content_type
        item.stored_as = await destination.put(
            run.destination_location, item.name, payload, content_type
        )
        logger.debug(
            f"Copied {item.name!r} ({len(payload)} bytes, {content_type}) as {item.stored_as!r}",
            extra={"item_name": item.name},
        )
        return len(payload)

    def _emit(
        self,
        run: TransferRun,
        item: TransferItem,
        old_status: TransferStatus,
        new_status: TransferStatus,
    ) -> None:
        if self.listener is None:
            return

        event = TransferEvent(
            run_id=run.run_id,
            item_name=item.name,
            old_status=old_status,
            new_status=new_status,
            progress_percent=run.progress_percent,
            error_message=item.error_message,
        )
        try:
            self.listener(event)
        except Exception as e:
            logger.warning(f"Transfer listener failed on {item.name!r}: {e}")

    def _record(self, run: TransferRun, item: TransferItem, size_bytes: int = 0) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.record_item(run.direction.value, item, size_bytes)
        except Exception as e:
            logger.warning(f"Metrics collector failed on {item.name!r}: {e}")

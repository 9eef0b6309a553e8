"""
Transfer run data model.

A run owns one TransferItem per selected object. Items move through

    PENDING → COPYING → SUCCESS
                      ↘ ERROR

and never leave a terminal state. Run progress is derived from item states
and never tracked separately.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from bucketbridge.core.exceptions import ConfigurationError
from bucketbridge.storage.types import ObjectDescriptor

if TYPE_CHECKING:
    from bucketbridge.migration.locations import Direction


@dataclass
class TransferConfig:
    """
    Configuration for a transfer run.

    Attributes:
        max_concurrency: Items copied at the same time (1 = strictly sequential)
        max_retries: Extra attempts for an item after a transport failure;
            integrity failures are never retried
        retry_delay_seconds: Base delay between attempts (multiplied by attempt number)
    """

    max_concurrency: int = 1
    max_retries: int = 0
    retry_delay_seconds: float = 1.0

    def __post_init__(self):
        if self.max_concurrency < 1:
            msg = f"max_concurrency must be at least 1, got {self.max_concurrency}"
            raise ConfigurationError(msg)
        if self.max_retries < 0:
            msg = f"max_retries cannot be negative, got {self.max_retries}"
            raise ConfigurationError(msg)


class TransferStatus(Enum):
    """Status of one object's copy attempt."""

    PENDING = "pending"
    """Selected for the run, not started yet"""

    COPYING = "copying"
    """Fetch/validate/upload in progress"""

    SUCCESS = "success"
    """Written to the destination"""

    ERROR = "error"
    """Failed; the reason is on the item"""

    @property
    def is_terminal(self) -> bool:
        return self in (TransferStatus.SUCCESS, TransferStatus.ERROR)


class RunOutcome(Enum):
    """How a call to TransferEngine.run ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NOTHING_SELECTED = "nothing_selected"


CANCELLED_MESSAGE = "cancelled before start"


@dataclass
class TransferItem:
    """One object's copy attempt within a run."""

    descriptor: ObjectDescriptor
    status: TransferStatus = TransferStatus.PENDING
    error_message: str | None = None
    content_type: str | None = None
    stored_as: str | None = None
    attempts: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def was_cancelled(self) -> bool:
        return self.status == TransferStatus.ERROR and self.error_message == CANCELLED_MESSAGE

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "error": self.error_message,
            "content_type": self.content_type,
            "stored_as": self.stored_as,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class TransferEvent:
    """
    One state change, emitted to the run listener.

    Presentation layers fold these into their own display state.
    """

    run_id: str
    item_name: str
    old_status: TransferStatus
    new_status: TransferStatus
    progress_percent: float
    error_message: str | None = None


TransferListener = Callable[[TransferEvent], Any]


@dataclass
class TransferSummary:
    """Final tally of a run."""

    success_count: int = 0
    error_count: int = 0
    cancelled_count: int = 0
    duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return self.success_count + self.error_count

    @property
    def success(self) -> bool:
        """True when every item was copied."""
        return self.error_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success_count": self.success_count,
            "error_count": self.error_count,
            "cancelled_count": self.cancelled_count,
            "total": self.total,
            "duration_seconds": round(self.duration_seconds, 2),
        }


@dataclass
class TransferRun:
    """
    The authoritative item list of one run.

    Created when a transfer is triggered and discarded when the next one
    starts. Progress is computed from item states.
    """

    items: list[TransferItem]
    source: str
    destination: str
    source_location: str
    destination_location: str
    direction: Direction
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def completed_count(self) -> int:
        return sum(1 for item in self.items if item.is_terminal)

    @property
    def progress_percent(self) -> float:
        if not self.items:
            return 0.0
        return self.completed_count / self.total * 100

    @property
    def is_complete(self) -> bool:
        return bool(self.items) and self.completed_count == self.total

    def item(self, name: str) -> TransferItem:
        for item in self.items:
            if item.name == name:
                return item
        raise KeyError(name)

    def summary(self) -> TransferSummary:
        success = sum(1 for item in self.items if item.status == TransferStatus.SUCCESS)
        errors = sum(1 for item in self.items if item.status == TransferStatus.ERROR)
        cancelled = sum(1 for item in self.items if item.was_cancelled)
        end = self.finished_at or datetime.now(UTC)
        return TransferSummary(
            success_count=success,
            error_count=errors,
            cancelled_count=cancelled,
            duration_seconds=(end - self.started_at).total_seconds(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "source": self.source,
            "destination": self.destination,
            "source_location": self.source_location,
            "destination_location": self.destination_location,
            "direction": self.direction.value,
            "progress_percent": round(self.progress_percent, 2),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class TransferResult:
    """What TransferEngine.run returns; ``run`` is None when nothing was selected."""

    outcome: RunOutcome
    run: TransferRun | None = None
    summary: TransferSummary = field(default_factory=TransferSummary)

    @property
    def nothing_selected(self) -> bool:
        return self.outcome == RunOutcome.NOTHING_SELECTED


class CancelToken:
    """
    Cooperative cancellation flag for a run.

    The engine checks it before starting each item; an item already in
    flight is allowed to finish.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

"""
Transfer State Machine - Manages transfer item lifecycle transitions.

Ensures items move through valid states only and provides a hook for
events, metrics and logging.

State Diagram:

    ┌─────────┐
    │ PENDING │ ─────── cancel() ───────┐
    └────┬────┘                         │
         │ start()                      │
         ▼                              │
    ┌─────────┐                         │
    │ COPYING │                         │
    └────┬────┘                         │
    ┌────┴─────┐                        │
    ▼          ▼                        │
┌─────────┐  ┌───────┐                  │
│ SUCCESS │  │ ERROR │ ◄────────────────┘
└─────────┘  └───────┘
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from bucketbridge.core.exceptions import InvalidStateTransitionError
from bucketbridge.migration.types import CANCELLED_MESSAGE, TransferItem, TransferStatus


class TransferStateMachine:
    """
    State machine for transfer item lifecycle.

    Valid Transitions:
        PENDING → COPYING (via start)
        PENDING → ERROR (via cancel)
        COPYING → SUCCESS (via mark_success)
        COPYING → ERROR (via mark_error)

    Usage:
        >>> sm = TransferStateMachine(on_transition=emit)
        >>> sm.start(item)
        >>> try:
        ...     item.stored_as = await destination.put(...)
        ...     sm.mark_success(item)
        ... except StorageError as e:
        ...     sm.mark_error(item, e.message)
    """

    # Valid transitions: from_status -> [to_status, ...]
    VALID_TRANSITIONS = {
        TransferStatus.PENDING: [TransferStatus.COPYING, TransferStatus.ERROR],
        TransferStatus.COPYING: [TransferStatus.SUCCESS, TransferStatus.ERROR],
        TransferStatus.SUCCESS: [],  # Terminal state
        TransferStatus.ERROR: [],  # Terminal state
    }

    def __init__(
        self,
        on_transition: Callable[[TransferItem, TransferStatus, TransferStatus], Any] | None = None,
    ):
        self._on_transition = on_transition

    def _validate_transition(self, item: TransferItem, target_status: TransferStatus) -> None:
        valid_targets = self.VALID_TRANSITIONS.get(item.status, [])

        if target_status not in valid_targets:
            raise InvalidStateTransitionError(item.name, item.status, target_status)

    def _transition(self, item: TransferItem, target_status: TransferStatus) -> TransferItem:
        old_status = item.status
        self._validate_transition(item, target_status)

        item.status = target_status
        if target_status.is_terminal:
            item.finished_at = datetime.now(UTC)

        if self._on_transition:
            self._on_transition(item, old_status, target_status)

        return item

    def start(self, item: TransferItem) -> TransferItem:
        """
        Raises:
            InvalidStateTransitionError: If item is not PENDING
        """
        self._validate_transition(item, TransferStatus.COPYING)
        item.started_at = datetime.now(UTC)
        return self._transition(item, TransferStatus.COPYING)

    def mark_success(self, item: TransferItem) -> TransferItem:
        """
        Raises:
            InvalidStateTransitionError: If item is not COPYING
        """
        item.error_message = None
        return self._transition(item, TransferStatus.SUCCESS)

    def mark_error(self, item: TransferItem, error_message: str) -> TransferItem:
        """
        Record a failed copy.

        Raises:
            InvalidStateTransitionError: If item is not COPYING
        """
        if item.status != TransferStatus.COPYING:
            raise InvalidStateTransitionError(item.name, item.status, TransferStatus.ERROR)
        item.error_message = error_message
        return self._transition(item, TransferStatus.ERROR)

    def cancel(self, item: TransferItem) -> TransferItem:
        """
        Close out an item the run never started.

        Raises:
            InvalidStateTransitionError: If item is not PENDING
        """
        if item.status != TransferStatus.PENDING:
            raise InvalidStateTransitionError(item.name, item.status, TransferStatus.ERROR)
        item.error_message = CANCELLED_MESSAGE
        return self._transition(item, TransferStatus.ERROR)

    def can_start(self, item: TransferItem) -> bool:
        return item.status == TransferStatus.PENDING

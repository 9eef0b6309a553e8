"""
Tests for TransferStateMachine.
"""

import pytest

from bucketbridge.core.exceptions import InvalidStateTransitionError
from bucketbridge.migration.state_machine import TransferStateMachine
from bucketbridge.migration.types import CANCELLED_MESSAGE, TransferItem, TransferStatus
from bucketbridge.storage.types import ObjectDescriptor


@pytest.fixture
def item():
    return TransferItem(descriptor=ObjectDescriptor(name="hero/a.jpg"))


class TestTransitions:
    def test_happy_path(self, item):
        sm = TransferStateMachine()

        sm.start(item)
        assert item.status == TransferStatus.COPYING
        assert item.started_at is not None

        sm.mark_success(item)
        assert item.status == TransferStatus.SUCCESS
        assert item.finished_at is not None
        assert item.duration_seconds >= 0

    def test_error_path(self, item):
        sm = TransferStateMachine()
        sm.start(item)

        sm.mark_error(item, "upload rejected")

        assert item.status == TransferStatus.ERROR
        assert item.error_message == "upload rejected"
        assert item.is_terminal

    def test_cancel_pending(self, item):
        TransferStateMachine().cancel(item)

        assert item.status == TransferStatus.ERROR
        assert item.error_message == CANCELLED_MESSAGE
        assert item.was_cancelled
        assert item.started_at is None


class TestInvalidTransitions:
    """Terminal states are final and steps cannot be skipped."""

    def test_cannot_succeed_without_starting(self, item):
        with pytest.raises(InvalidStateTransitionError, match="pending → success"):
            TransferStateMachine().mark_success(item)

    def test_cannot_fail_without_starting(self, item):
        with pytest.raises(InvalidStateTransitionError):
            TransferStateMachine().mark_error(item, "boom")
        assert item.error_message is None

    def test_cannot_restart(self, item):
        sm = TransferStateMachine()
        sm.start(item)

        with pytest.raises(InvalidStateTransitionError):
            sm.start(item)

    @pytest.mark.parametrize("terminal", ["success", "error"])
    def test_terminal_states_are_final(self, item, terminal):
        sm = TransferStateMachine()
        sm.start(item)
        if terminal == "success":
            sm.mark_success(item)
        else:
            sm.mark_error(item, "x")
        finished_at = item.finished_at

        with pytest.raises(InvalidStateTransitionError):
            sm.mark_error(item, "again")
        with pytest.raises(InvalidStateTransitionError):
            sm.cancel(item)

        assert item.status.value == terminal
        assert item.finished_at == finished_at

    def test_failed_start_leaves_item_untouched(self, item):
        sm = TransferStateMachine()
        sm.start(item)
        sm.mark_success(item)
        started_at = item.started_at

        with pytest.raises(InvalidStateTransitionError):
            sm.start(item)
        assert item.started_at == started_at

    def test_can_start(self, item):
        sm = TransferStateMachine()
        assert sm.can_start(item) is True
        sm.start(item)
        assert sm.can_start(item) is False


class TestTransitionCallback:
    def test_callback_sees_each_transition(self, item):
        seen = []
        sm = TransferStateMachine(on_transition=lambda i, old, new: seen.append((old, new, i.status)))

        sm.start(item)
        sm.mark_success(item)

        assert seen == [
            (TransferStatus.PENDING, TransferStatus.COPYING, TransferStatus.COPYING),
            (TransferStatus.COPYING, TransferStatus.SUCCESS, TransferStatus.SUCCESS),
        ]

    def test_error_message_is_set_before_callback(self, item):
        messages = []
        sm = TransferStateMachine(on_transition=lambda i, old, new: messages.append(i.error_message))

        sm.start(item)
        sm.mark_error(item, "boom")

        assert messages == [None, "boom"]

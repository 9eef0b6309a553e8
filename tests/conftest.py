"""
Pytest configuration and shared fixtures for bucketbridge tests
"""

import pytest

from bucketbridge.migration import LocationMap, TransferEvent
from bucketbridge.storage.backends.memory import InMemoryBackend
from bucketbridge.storage.types import BackendKind

# ============================================
# BACKENDS
# ============================================


@pytest.fixture
def self_hosted():
    """Self-hosted side, handing out base64 payloads like the relay does."""
    return InMemoryBackend(kind=BackendKind.SELF_HOSTED, name="minio", base64_payloads=True)


@pytest.fixture
def managed():
    """Managed side."""
    return InMemoryBackend(kind=BackendKind.MANAGED, name="managed")


@pytest.fixture
def locations():
    return LocationMap.default()


# ============================================
# EVENTS
# ============================================


class EventRecorder:
    """Transfer listener that keeps every event it receives."""

    def __init__(self):
        self.events: list[TransferEvent] = []

    def __call__(self, event: TransferEvent) -> None:
        self.events.append(event)

    @property
    def progress(self) -> list[float]:
        return [e.progress_percent for e in self.events]

    def for_item(self, name: str) -> list[TransferEvent]:
        return [e for e in self.events if e.item_name == name]


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep BUCKETBRIDGE_* settings of the developer's shell out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("BUCKETBRIDGE_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
def reset_console_logging():
    """Drop the console handler a CLI invocation may have installed."""
    yield
    import logging

    from bucketbridge.core import logger as logger_module

    root = logging.getLogger("bucketbridge")
    if logger_module._console_handler is not None:
        root.removeHandler(logger_module._console_handler)
        logger_module._console_handler = None
    root.setLevel(logging.NOTSET)

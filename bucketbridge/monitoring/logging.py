"""
Structured logging for transfer runs

JSON output with the active run's context (run id, direction, locations,
current item) attached to every record, so a failed copy can be traced back
to the run and object it belongs to.
"""

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context variables for propagating run context
run_context: ContextVar[dict[str, Any]] = ContextVar("run_context", default={})


def set_run_context(
    run_id: str,
    direction: str | None = None,
    source_location: str | None = None,
    destination_location: str | None = None,
) -> None:
    """Set run context for current execution"""
    run_context.set(
        {
            "run_id": run_id,
            "direction": direction,
            "source_location": source_location,
            "destination_location": destination_location,
        }
    )


def set_item_context(item_name: str | None) -> None:
    """Attach the object being copied to the current run context"""
    context = dict(run_context.get({}))
    context["item_name"] = item_name
    run_context.set(context)


def clear_run_context() -> None:
    run_context.set({})


class MigrationJsonFormatter(logging.Formatter):
    """
    JSON formatter for migration logs with structured fields
    """

    # Fields to extract from log record if present
    _EXTRA_FIELDS = (
        "run_id",
        "item_name",
        "backend",
        "operation",
        "status",
        "duration_ms",
        "attempt",
        "error_type",
    )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON"""
        log_entry = self._build_base_entry(record)
        self._add_run_context(log_entry)
        self._add_record_extras(log_entry, record)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)

    def _build_base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

    def _add_run_context(self, log_entry: dict[str, Any]) -> None:
        context = run_context.get({})
        if context:
            log_entry.update({k: v for k, v in context.items() if v is not None})

    def _add_record_extras(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self._EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, ""):
                log_entry[field] = value


class MigrationContextFilter(logging.Filter):
    """
    Logging filter that adds run context to log records
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = run_context.get({})

        record.run_id = context.get("run_id", "")
        record.item_name = getattr(record, "item_name", None) or context.get("item_name", "")

        return True

"""
In-process transfer statistics
"""

from typing import Any

from bucketbridge.migration.types import TransferItem, TransferStatus


class TransferStats:
    """Collect transfer counters without any metrics backend"""

    def __init__(self):
        self.metrics: dict[str, Any] = {
            "runs_started": 0,
            "runs_finished": 0,
            "items_succeeded": 0,
            "items_failed": 0,
            "bytes_written": 0,
            "by_direction": {},
        }

    def run_started(self) -> None:
        self.metrics["runs_started"] += 1

    def run_finished(self) -> None:
        self.metrics["runs_finished"] += 1

    def record_item(self, direction: str, item: TransferItem, size_bytes: int = 0) -> None:
        if item.status == TransferStatus.SUCCESS:
            self.metrics["items_succeeded"] += 1
        else:
            self.metrics["items_failed"] += 1
        self.metrics["bytes_written"] += size_bytes

        stats = self.metrics["by_direction"].setdefault(direction, {"success": 0, "error": 0})
        stats[item.status.value] += 1

    @property
    def active_runs(self) -> int:
        return self.metrics["runs_started"] - self.metrics["runs_finished"]

    def get_metrics(self) -> dict[str, Any]:
        total = self.metrics["items_succeeded"] + self.metrics["items_failed"]
        success_rate = self.metrics["items_succeeded"] / total * 100 if total > 0 else 0

        return {
            **self.metrics,
            "success_rate": f"{success_rate:.2f}%",
        }

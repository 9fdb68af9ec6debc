"""Thread-safe store of failure records keyed by check."""

import threading
from collections import defaultdict

from siteqa.models import FailureRecord


class FailureAggregator:
    """
    Multi-valued map of check key -> ordered failure records.

    Every operation takes the same lock, so concurrent inserts from any
    number of workers are never lost and a read never sees a half-applied
    insert.
    """

    def __init__(self):
        self._records: dict[str, list[FailureRecord]] = defaultdict(list)
        self._size = 0
        self._lock = threading.Lock()

    def record(self, check_key: str, url: str, detail: str = "", count: int = 1) -> FailureRecord:
        """
        Append a failure for a check.

        Args:
            check_key: Aggregation key of the failing check
            url: Page that violated the rule
            detail: Human-readable description (offending values, counts)
            count: Severity reported by the check

        Returns:
            The stored record
        """
        failure = FailureRecord(check_key=check_key, url=url, detail=detail, count=count)
        with self._lock:
            self._records[check_key].append(failure)
            self._size += 1
        return failure

    def is_empty(self) -> bool:
        with self._lock:
            return self._size == 0

    def __len__(self) -> int:
        with self._lock:
            return self._size

    def records(self, check_key: str) -> list[FailureRecord]:
        """Copy of the records collected for one check, in insertion order."""
        with self._lock:
            return list(self._records.get(check_key, ()))

    def check_keys(self) -> list[str]:
        with self._lock:
            return [key for key, records in self._records.items() if records]

    def snapshot(self) -> dict[str, list[FailureRecord]]:
        """Copy of the whole collection, grouped by check."""
        with self._lock:
            return {key: list(records) for key, records in self._records.items() if records}

    def render_report(self) -> str:
        """Every collected failure grouped by check, one URL per line."""
        lines = []
        for check_key, records in self.snapshot().items():
            lines.append(f"{check_key} ({len(records)}):")
            lines.extend(f"  {record.render()}" for record in records)
        return "\n".join(lines)

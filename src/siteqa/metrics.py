"""Thread-safe per-check execution counters."""

import threading

from siteqa.models import CheckMetrics


class MetricsRecorder:
    """
    Tracks executions and pass/fail tallies per check.

    A single lock guards all counters. Counters for a check are created on
    first use, so a run starts with every check at zero.
    """

    def __init__(self):
        self._metrics: dict[str, CheckMetrics] = {}
        self._lock = threading.Lock()

    def _get(self, check_key: str) -> CheckMetrics:
        metrics = self._metrics.get(check_key)
        if metrics is None:
            metrics = CheckMetrics(check_key=check_key)
            self._metrics[check_key] = metrics
        return metrics

    def record_execution(self, check_key: str) -> None:
        """Count an attempted evaluation."""
        with self._lock:
            self._get(check_key).executions += 1

    def increment(self, check_key: str, passed: bool, count: int = 1) -> None:
        """
        Count a conclusive evaluation.

        Args:
            check_key: Check that ran
            passed: Whether the page satisfied the rule
            count: Failure severity, ignored for passes
        """
        with self._lock:
            metrics = self._get(check_key)
            if passed:
                metrics.passed += 1
            else:
                metrics.failed += 1
                metrics.failure_count += count

    def record_error(self, check_key: str) -> None:
        """Count an inconclusive evaluation (the check raised)."""
        with self._lock:
            self._get(check_key).errors += 1

    def record_skip(self, check_key: str) -> None:
        with self._lock:
            self._get(check_key).skipped += 1

    def get(self, check_key: str) -> CheckMetrics:
        """Copy of the counters for one check (zeros if it never ran)."""
        with self._lock:
            metrics = self._metrics.get(check_key) or CheckMetrics(check_key=check_key)
            return CheckMetrics(**vars(metrics))

    def snapshot(self) -> dict[str, CheckMetrics]:
        with self._lock:
            return {key: CheckMetrics(**vars(m)) for key, m in self._metrics.items()}

    def summary(self) -> str:
        """One line per check: executions, passed, failed, errors, skipped."""
        lines = []
        for key, m in sorted(self.snapshot().items()):
            lines.append(
                f"{key}: executions={m.executions} passed={m.passed} "
                f"failed={m.failed} errors={m.errors} skipped={m.skipped}"
            )
        return "\n".join(lines)

"""Data models for article validation runs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union


@dataclass(frozen=True)
class Pass:
    """The page satisfies the check's rule."""


@dataclass(frozen=True)
class Fail:
    """The page violates the check's rule.

    count lets a check report severity, e.g. the number of malformed images.
    """
    detail: str = ""
    count: int = 1


@dataclass(frozen=True)
class ExecutionError:
    """The check raised while running; neither a pass nor a fail."""
    detail: str


Outcome = Union[Pass, Fail, ExecutionError]

PASS = Pass()


@dataclass(frozen=True)
class FailureRecord:
    """A single failed (check, URL) evaluation."""
    check_key: str
    url: str
    detail: str = ""
    count: int = 1

    def render(self) -> str:
        if self.detail:
            return f"{self.url} ( {self.detail} )"
        return self.url


@dataclass
class CheckMetrics:
    """Execution counters for a single check."""
    check_key: str
    executions: int = 0
    passed: int = 0
    failed: int = 0
    errors: int = 0
    skipped: int = 0
    failure_count: int = 0  # Sum of Fail.count, i.e. severity

    @property
    def conclusive(self) -> int:
        """Evaluations that produced a pass or a fail."""
        return self.passed + self.failed

    @property
    def failure_rate(self) -> float:
        if self.conclusive == 0:
            return 0.0
        return self.failed / self.conclusive


@dataclass
class RunReport:
    """Final state of a validation run, read after every worker has joined."""
    name: str
    failures: dict[str, list[FailureRecord]] = field(default_factory=dict)
    metrics: dict[str, CheckMetrics] = field(default_factory=dict)
    urls_served: int = 0
    urls_skipped: int = 0
    load_errors: int = 0
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def total_failures(self) -> int:
        return sum(len(records) for records in self.failures.values())

    @property
    def passed(self) -> bool:
        return self.total_failures == 0

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def render(self) -> str:
        """Render every failure grouped by check, one URL per line."""
        lines = [f"{self.name}: {self.total_failures} failure(s)"]
        for check_key, records in self.failures.items():
            lines.append("")
            lines.append(f"{check_key} ({len(records)}):")
            for record in records:
                lines.append(f"  {record.render()}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON output."""
        return {
            "name": self.name,
            "passed": self.passed,
            "urls_served": self.urls_served,
            "urls_skipped": self.urls_skipped,
            "load_errors": self.load_errors,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "failures": {
                key: [
                    {"url": r.url, "detail": r.detail, "count": r.count}
                    for r in records
                ]
                for key, records in self.failures.items()
            },
            "metrics": {
                key: {
                    "executions": m.executions,
                    "passed": m.passed,
                    "failed": m.failed,
                    "errors": m.errors,
                    "skipped": m.skipped,
                    "failure_count": m.failure_count,
                }
                for key, m in self.metrics.items()
            },
        }

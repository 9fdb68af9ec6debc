"""
Validation Orchestrator.

Owns the per-run shared state (URL cursor, failure aggregator, metrics
recorder), spawns the worker pool, waits for every worker to finish and
turns the aggregator into a report. Nothing is shared between runs.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from siteqa.aggregator import FailureAggregator
from siteqa.checks import Check
from siteqa.constants import DEFAULT_DRAFT_SITE_HOST
from siteqa.cursor import SharedUrlCursor
from siteqa.exceptions import AggregateFailureError, SessionError
from siteqa.infrastructure.page_session import SessionFactory
from siteqa.infrastructure.rate_limiter import TokenBucketLimiter
from siteqa.metrics import MetricsRecorder
from siteqa.models import RunReport
from siteqa.skip_policy import SkipPolicy
from siteqa.worker import PageFactory, WorkerLoop, WorkerStats

logger = logging.getLogger(__name__)


def default_worker_count() -> int:
    """Available parallelism of the machine."""
    return os.cpu_count() or 1


class Orchestrator:
    """
    Runs a set of checks over a URL corpus with a pool of worker threads.

    Instances are single-use: construct one per run.

    Usage:
        orchestrator = Orchestrator(urls, registry.select(keys), session_factory)
        report = orchestrator.run_and_assert()
    """

    def __init__(
        self,
        corpus: Iterable[str],
        checks: Sequence[Check],
        session_factory: SessionFactory,
        skip_policy: Optional[SkipPolicy] = None,
        workers: Optional[int] = None,
        name: str = "validation run",
        page_factory: Optional[PageFactory] = None,
        draft_site_host: str = DEFAULT_DRAFT_SITE_HOST,
    ):
        """
        Initialize orchestrator.

        Args:
            corpus: Ordered article URLs, consumed at most once each
            checks: Checks to run on every page
            session_factory: Produces one unopened page session per worker
            skip_policy: Skip/exclusion rules (defaults apply when omitted)
            workers: Pool size; available parallelism when omitted
            name: Scenario name used in the report
            page_factory: Builds the content model from a loaded session
            draft_site_host: Staging host for the default content model
        """
        if workers is not None and workers < 1:
            raise ValueError("workers must be at least 1")

        self.cursor = SharedUrlCursor(corpus)
        self.checks: List[Check] = list(checks)
        self.session_factory = session_factory
        self.skip_policy = skip_policy or SkipPolicy()
        self.workers = workers or default_worker_count()
        self.name = name
        self.page_factory = page_factory
        self.draft_site_host = draft_site_host

        self.aggregator = FailureAggregator()
        self.metrics = MetricsRecorder()
        self._ran = False

    def _new_worker(self, worker_id: int, limiter: Optional[TokenBucketLimiter] = None) -> WorkerLoop:
        return WorkerLoop(
            worker_id=worker_id,
            cursor=self.cursor,
            checks=self.checks,
            session_factory=self.session_factory,
            skip_policy=self.skip_policy,
            aggregator=self.aggregator,
            metrics=self.metrics,
            limiter=limiter,
            page_factory=self.page_factory,
            draft_site_host=self.draft_site_host,
        )

    def _execute(self) -> List[WorkerStats]:
        """Run the worker pool and return stats of the workers that finished."""
        pool_size = min(self.workers, self.cursor.total)
        logger.info(
            f"Starting {pool_size} workers for {self.cursor.total} URLs "
            f"and {len(self.checks)} checks"
        )

        stats: List[WorkerStats] = []
        worker_errors: List[BaseException] = []

        # Leaving the executor block joins every worker thread
        with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="siteqa-worker") as executor:
            futures = [
                executor.submit(self._new_worker(worker_id).run)
                for worker_id in range(pool_size)
            ]

        for future in futures:
            error = future.exception()
            if error is None:
                stats.append(future.result())
            else:
                logger.error(f"Worker terminated abnormally: {error}")
                worker_errors.append(error)

        if worker_errors and not self.cursor.exhausted:
            raise SessionError(
                f"{len(worker_errors)} worker(s) failed and {self.cursor.remaining} "
                f"URLs were never processed: {worker_errors[0]}"
            ) from worker_errors[0]

        return stats

    def run(self) -> RunReport:
        """
        Validate the whole corpus.

        Returns:
            Report built after every worker has joined

        Raises:
            SessionError: If workers died before the corpus was drained
        """
        if self._ran:
            raise RuntimeError("Orchestrator instances are single-use")
        self._ran = True

        report = RunReport(name=self.name)

        stats = self._execute() if self.cursor.total else []

        report.finished_at = datetime.now()
        report.failures = self.aggregator.snapshot()
        report.metrics = self.metrics.snapshot()
        report.urls_served = sum(s.urls_served for s in stats)
        report.urls_skipped = sum(s.urls_skipped for s in stats)
        report.load_errors = sum(s.load_errors for s in stats)

        logger.info(
            f"{self.name} finished in {report.duration_seconds:.1f}s: "
            f"{report.urls_served} URLs served, {report.urls_skipped} skipped, "
            f"{report.total_failures} failures"
        )
        return report

    def run_and_assert(self) -> RunReport:
        """
        Run, then fail once if anything was recorded.

        Raises:
            AggregateFailureError: With the full grouped report as message
        """
        report = self.run()
        if not self.aggregator.is_empty():
            raise AggregateFailureError(report)
        return report


class SequentialRunner(Orchestrator):
    """
    Traverses the corpus on the calling thread with throttled page loads.

    Every load first takes a permit from the limiter, so the live site sees
    at most the limiter's rate regardless of how fast checks run.
    """

    def __init__(
        self,
        corpus: Iterable[str],
        checks: Sequence[Check],
        session_factory: SessionFactory,
        limiter: TokenBucketLimiter,
        **kwargs,
    ):
        kwargs["workers"] = 1
        super().__init__(corpus, checks, session_factory, **kwargs)
        self.limiter = limiter

    def _execute(self) -> List[WorkerStats]:
        logger.info(
            f"Starting sequential traversal of {self.cursor.total} URLs "
            f"at {self.limiter.rate} pages/second"
        )
        return [self._new_worker(0, limiter=self.limiter).run()]

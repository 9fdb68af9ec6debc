"""
Worker Loop.

One worker per thread. A worker leases a single page session for its whole
life, pulls URLs from the shared cursor until it is exhausted, evaluates the
configured checks on each page and feeds outcomes to the shared aggregator
and metrics recorder.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from siteqa.aggregator import FailureAggregator
from siteqa.checks import Check
from siteqa.constants import (
    DEFAULT_DRAFT_SITE_HOST,
    ERROR_MESSAGE_LOG_LIMIT,
    PAGE_LOAD_FAILURE_KEY,
)
from siteqa.content_model import ArticlePage
from siteqa.cursor import SharedUrlCursor
from siteqa.infrastructure.page_session import PageSession, SessionFactory
from siteqa.infrastructure.rate_limiter import TokenBucketLimiter
from siteqa.metrics import MetricsRecorder
from siteqa.models import ExecutionError, Fail, Outcome, Pass
from siteqa.skip_policy import SkipPolicy

logger = logging.getLogger(__name__)

PageFactory = Callable[[PageSession], ArticlePage]


class WorkerState(Enum):
    """Worker lifecycle states."""
    IDLE = "idle"
    ACQUIRE_SESSION = "acquire_session"
    FETCH_URL = "fetch_url"
    EVALUATE_CHECKS = "evaluate_checks"
    RELEASE_SESSION = "release_session"
    DONE = "done"


@dataclass
class WorkerStats:
    """What one worker did during a run."""
    worker_id: int
    urls_served: int = 0
    urls_skipped: int = 0
    pages_evaluated: int = 0
    load_errors: int = 0


def run_check(check: Check, page: ArticlePage) -> Outcome:
    """
    Evaluate one check in isolation.

    Any exception raised by the check becomes an ExecutionError outcome, so
    callers decide what to do from the result type alone.
    """
    try:
        return check.evaluate(page)
    except Exception as e:
        message = str(e)[:ERROR_MESSAGE_LOG_LIMIT]
        return ExecutionError(detail=f"{type(e).__name__}: {message}")


class WorkerLoop:
    """
    Drives one page session through the corpus.

    States: ACQUIRE_SESSION -> FETCH_URL -> EVALUATE_CHECKS -> FETCH_URL ...
    -> RELEASE_SESSION -> DONE. The session is closed on every exit path.
    """

    def __init__(
        self,
        worker_id: int,
        cursor: SharedUrlCursor,
        checks: Sequence[Check],
        session_factory: SessionFactory,
        skip_policy: SkipPolicy,
        aggregator: FailureAggregator,
        metrics: MetricsRecorder,
        limiter: Optional[TokenBucketLimiter] = None,
        page_factory: Optional[PageFactory] = None,
        draft_site_host: str = DEFAULT_DRAFT_SITE_HOST,
    ):
        """
        Initialize worker.

        Args:
            worker_id: Index of the worker, used in logs
            cursor: Shared URL cursor
            checks: Checks to evaluate on every page, in order
            session_factory: Produces the unopened session this worker will own
            skip_policy: Skip/exclusion rules
            aggregator: Shared failure store
            metrics: Shared execution counters
            limiter: Throttle page loads through this limiter when given
            page_factory: Builds the content model from the loaded session
            draft_site_host: Passed to the default page factory
        """
        self.worker_id = worker_id
        self.cursor = cursor
        self.checks: List[Check] = list(checks)
        self.session_factory = session_factory
        self.skip_policy = skip_policy
        self.aggregator = aggregator
        self.metrics = metrics
        self.limiter = limiter
        self.page_factory = page_factory or (
            lambda session: ArticlePage.from_session(session, draft_site_host=draft_site_host)
        )
        self.settle_seconds = max((check.settle_seconds for check in self.checks), default=0.0)
        # With an age-exempt check selected, new articles are filtered per check
        self.skip_new_articles = all(check.compare_age for check in self.checks)
        self.state = WorkerState.IDLE
        self.stats = WorkerStats(worker_id=worker_id)

    def run(self) -> WorkerStats:
        """
        Process URLs until the cursor is exhausted.

        Returns:
            Counters for this worker

        Raises:
            Exception: Only if the session cannot be opened; the session is
                still closed before the error propagates
        """
        self.state = WorkerState.ACQUIRE_SESSION
        session = self.session_factory()
        try:
            session.open()
            logger.debug(f"Worker {self.worker_id} acquired session")

            while True:
                self.state = WorkerState.FETCH_URL
                page = self._fetch_next(session)
                if page is None:
                    break

                self.state = WorkerState.EVALUATE_CHECKS
                self._evaluate_checks(page)
                self.stats.pages_evaluated += 1
        finally:
            self.state = WorkerState.RELEASE_SESSION
            try:
                session.close()
            except Exception as e:
                logger.warning(f"Worker {self.worker_id} failed to close session: {e}")
            self.state = WorkerState.DONE
            logger.debug(
                f"Worker {self.worker_id} done: served={self.stats.urls_served} "
                f"skipped={self.stats.urls_skipped} evaluated={self.stats.pages_evaluated}"
            )

        return self.stats

    def _fetch_next(self, session: PageSession) -> Optional[ArticlePage]:
        """
        Load URLs until one is eligible for evaluation.

        Skipped and unloadable URLs are discarded in this loop; load
        failures are recorded under PAGE_LOAD_FAILURE_KEY. If every remaining
        URL is skipped the worker drains the corpus without running a check.

        Returns:
            The loaded page, or None when the cursor is exhausted
        """
        while True:
            url = self.cursor.try_next()
            if url is None:
                return None
            self.stats.urls_served += 1

            logger.info(f"Loading - {url}")
            try:
                if self.limiter is not None:
                    session.load_url_with_throttling(url, self.limiter)
                else:
                    session.load_url(url)
                if self.settle_seconds > 0:
                    time.sleep(self.settle_seconds)
                page = self.page_factory(session)
                page_age = page.page_age_in_weeks()
            except Exception as e:
                message = f"{type(e).__name__}: {str(e)[:ERROR_MESSAGE_LOG_LIMIT]}"
                self.stats.load_errors += 1
                self.aggregator.record(PAGE_LOAD_FAILURE_KEY, url, message)
                logger.error(f"Error occurred while loading: {url}, error message: {message}")
                continue

            if self.skip_policy.should_skip_url(
                url, page_age, check_age=self.skip_new_articles
            ):
                self.stats.urls_skipped += 1
                continue

            return page

    def _evaluate_checks(self, page: ArticlePage) -> None:
        page_age = page.page_age_in_weeks()

        for check in self.checks:
            if self.skip_policy.should_skip(
                check.key,
                page.url,
                page_age_weeks=page_age,
                compare_age=check.compare_age,
                extra_categories=check.excluded_categories,
            ):
                self.metrics.record_skip(check.key)
                continue

            self.metrics.record_execution(check.key)
            outcome = run_check(check, page)

            if isinstance(outcome, Pass):
                self.metrics.increment(check.key, passed=True)
            elif isinstance(outcome, Fail):
                self.metrics.increment(check.key, passed=False, count=outcome.count)
                self.aggregator.record(check.key, page.url, outcome.detail, outcome.count)
            else:
                self.metrics.record_error(check.key)
                logger.error(
                    f"Error occurred while processing: {page.url}, check: {check.key}, "
                    f"error message: {outcome.detail}"
                )

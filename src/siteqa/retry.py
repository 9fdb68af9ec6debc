"""
Retry wrapper for network-conditioned checks.

Some checks depend on the route the browser takes to the site (e.g. pricing
behind a rotating EU proxy) and fail transiently. The wrapper re-runs the
single check on a fresh session a bounded number of times, with no delay
between attempts.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from siteqa.checks import Check
from siteqa.constants import DEFAULT_DRAFT_SITE_HOST, DEFAULT_MAX_RETRY_ATTEMPTS
from siteqa.content_model import ArticlePage
from siteqa.exceptions import RetryExhaustedError
from siteqa.infrastructure.page_session import PageSession
from siteqa.models import Outcome

logger = logging.getLogger(__name__)

# Opens a fresh session (e.g. through the configured proxy) ready to load URLs
SessionOpener = Callable[[], PageSession]


@dataclass
class RetryState:
    """Attempt bookkeeping for one logical check invocation."""
    max_attempts: int
    attempt: int = 0
    last_error: Optional[BaseException] = None

    @property
    def remaining(self) -> int:
        return self.max_attempts - self.attempt


class RetryingCheckRunner:
    """
    Runs one check against one URL, replacing the session after each error.

    Any exception while opening the session, loading the page or evaluating
    the check counts as a failed attempt. A Fail outcome is a definitive
    answer and is returned as-is.
    """

    def __init__(
        self,
        session_opener: SessionOpener,
        max_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS,
        draft_site_host: str = DEFAULT_DRAFT_SITE_HOST,
    ):
        """
        Initialize retry runner.

        Args:
            session_opener: Returns an opened session; called once per attempt
            max_attempts: Total attempts before giving up
            draft_site_host: Passed to the content model
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.session_opener = session_opener
        self.max_attempts = max_attempts
        self.draft_site_host = draft_site_host

    def run(self, check: Check, url: str) -> Outcome:
        """
        Evaluate `check` on `url`, retrying on errors.

        Returns:
            The first conclusive outcome

        Raises:
            RetryExhaustedError: After max_attempts failed attempts, carrying
                the last error's message
        """
        state = RetryState(max_attempts=self.max_attempts)

        while state.remaining > 0:
            state.attempt += 1
            session: Optional[PageSession] = None
            try:
                session = self.session_opener()
                session.load_url(url)
                page = ArticlePage.from_session(session, draft_site_host=self.draft_site_host)
                return check.evaluate(page)
            except Exception as e:
                state.last_error = e
                logger.info(
                    f"Attempt {state.attempt}/{state.max_attempts} of {check.key} "
                    f"on {url} failed: {e}"
                )
            finally:
                if session is not None:
                    try:
                        session.close()
                    except Exception as e:
                        logger.warning(f"Error closing session: {e}")

        logger.debug(f"{state.max_attempts} retries completed for {check.key}")
        raise RetryExhaustedError(check.key, state.attempt, state.last_error)

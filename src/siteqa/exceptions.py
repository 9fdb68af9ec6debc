"""Exception hierarchy for the article QA harness."""

from typing import Optional


class SiteQAError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(SiteQAError):
    """Raised when configuration values are missing or invalid."""


class CorpusError(SiteQAError):
    """Raised when the URL corpus cannot be produced."""


class SessionError(SiteQAError):
    """Raised when a page session is used before it is opened or cannot be opened."""


class RetryExhaustedError(SiteQAError):
    """Raised by the retry wrapper once every attempt has failed."""

    def __init__(self, check_key: str, attempts: int, last_error: Optional[BaseException]):
        self.check_key = check_key
        self.attempts = attempts
        self.last_error = last_error
        message = str(last_error) if last_error is not None else "unknown error"
        super().__init__(message)


class AggregateFailureError(SiteQAError, AssertionError):
    """Raised once per scenario when any failure record was collected.

    Subclasses AssertionError so test runners report it as a test failure
    rather than an error. The message is the full grouped report.
    """

    def __init__(self, report):
        self.report = report
        super().__init__(report.render())

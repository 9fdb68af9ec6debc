"""Tests for the retry wrapper."""

import pytest

from siteqa.checks import VatPricesInEUCheck
from siteqa.exceptions import RetryExhaustedError
from siteqa.models import PASS, Fail
from siteqa.retry import RetryingCheckRunner

URL = "https://www.baeldung.com/course-rws-early-access"
VAT_PAGE = '<html><body><span class="price-with-vat">€ 297</span></body></html>'


class FlakyOpener:
    """Opens sessions whose page load times out for the first `failures` attempts."""

    def __init__(self, session_cls, failures, html=VAT_PAGE):
        self.session_cls = session_cls
        self.failures = failures
        self.html = html
        self.sessions = []

    def __call__(self):
        attempt = len(self.sessions) + 1
        fail_urls = [URL] if attempt <= self.failures else []
        session = self.session_cls({URL: self.html}, fail_urls=fail_urls)
        self.sessions.append(session)
        session.open()
        return session


class TestRetryingCheckRunner:
    """Test cases for RetryingCheckRunner."""

    def test_first_attempt_succeeds(self, session_cls):
        opener = FlakyOpener(session_cls, failures=0)
        outcome = RetryingCheckRunner(opener).run(VatPricesInEUCheck(), URL)

        assert outcome == PASS
        assert len(opener.sessions) == 1

    def test_passes_on_fifth_attempt(self, session_cls):
        """Errors on attempts 1-4 and success on 5 passes with bound 5."""
        opener = FlakyOpener(session_cls, failures=4)
        outcome = RetryingCheckRunner(opener, max_attempts=5).run(VatPricesInEUCheck(), URL)

        assert outcome == PASS
        assert len(opener.sessions) == 5

    def test_fails_after_exactly_five_attempts(self, session_cls):
        opener = FlakyOpener(session_cls, failures=100)

        with pytest.raises(RetryExhaustedError) as excinfo:
            RetryingCheckRunner(opener, max_attempts=5).run(VatPricesInEUCheck(), URL)

        assert len(opener.sessions) == 5
        assert excinfo.value.attempts == 5
        assert str(excinfo.value) == f"Timeout loading {URL}"
        assert isinstance(excinfo.value.last_error, TimeoutError)

    def test_every_session_is_closed(self, session_cls):
        opener = FlakyOpener(session_cls, failures=2)
        RetryingCheckRunner(opener).run(VatPricesInEUCheck(), URL)

        assert all(session.close_calls == 1 for session in opener.sessions)

    def test_fail_outcome_is_not_retried(self, session_cls):
        """A definitive Fail is returned on the first attempt."""
        opener = FlakyOpener(session_cls, failures=0, html="<p>$297</p>")
        outcome = RetryingCheckRunner(opener).run(VatPricesInEUCheck(proxy_address="eu:1"), URL)

        assert isinstance(outcome, Fail)
        assert len(opener.sessions) == 1

    def test_opener_errors_count_as_attempts(self):
        calls = []

        def opener():
            calls.append(1)
            raise ConnectionError("proxy refused connection")

        with pytest.raises(RetryExhaustedError) as excinfo:
            RetryingCheckRunner(opener, max_attempts=3).run(VatPricesInEUCheck(), URL)

        assert len(calls) == 3
        assert "proxy refused connection" in str(excinfo.value)

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            RetryingCheckRunner(lambda: None, max_attempts=0)

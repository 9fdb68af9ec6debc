"""Unit tests for PlaywrightPageSession with a mocked Playwright driver."""

from unittest.mock import MagicMock, Mock, patch

import pytest

from siteqa.browser_config import BrowserConfig, PROXY_CONFIG
from siteqa.exceptions import SessionError
from siteqa.infrastructure.page_session import (
    PageSession,
    PlaywrightPageSession,
    playwright_session_factory,
)
from siteqa.infrastructure.proxy import ProxyConfig


@pytest.fixture
def driver():
    """Patched sync_playwright returning a fully mocked driver."""
    playwright = MagicMock()
    with patch("playwright.sync_api.sync_playwright") as sync_playwright:
        sync_playwright.return_value.start.return_value = playwright
        yield playwright


class TestPlaywrightPageSession:
    """Tests for PlaywrightPageSession."""

    def test_satisfies_protocol(self):
        assert isinstance(PlaywrightPageSession(), PageSession)

    def test_requires_open(self):
        session = PlaywrightPageSession()

        with pytest.raises(SessionError):
            session.load_url("https://www.baeldung.com/")
        with pytest.raises(SessionError):
            session.content()
        with pytest.raises(SessionError):
            session.evaluate("1 + 1")

    def test_open_load_close(self, driver):
        session = PlaywrightPageSession(BrowserConfig(browser_type="chromium"))
        session.open()
        page = driver.chromium.launch.return_value.new_context.return_value.new_page.return_value
        page.content.return_value = "<html></html>"

        session.load_url("https://www.baeldung.com/java-streams")

        assert session.is_open
        assert session.url == "https://www.baeldung.com/java-streams"
        page.goto.assert_called_once_with(
            "https://www.baeldung.com/java-streams", wait_until="load", timeout=30000
        )
        assert session.content() == "<html></html>"

        session.close()
        assert not session.is_open
        driver.stop.assert_called_once()

    def test_open_with_proxy(self, driver):
        session = PlaywrightPageSession(PROXY_CONFIG)
        proxy = ProxyConfig(host="eu.proxy.example.com", port=8080, username="qa", password="secret")

        session.open_with_proxy(proxy)

        launch_kwargs = driver.chromium.launch.call_args.kwargs
        assert launch_kwargs["proxy"] == proxy.playwright_proxy
        assert launch_kwargs["headless"] is True

    def test_failed_launch_cleans_up(self, driver):
        driver.chromium.launch.return_value.new_context.side_effect = RuntimeError("context failed")
        session = PlaywrightPageSession()

        with pytest.raises(RuntimeError):
            session.open()

        driver.chromium.launch.return_value.close.assert_called_once()
        driver.stop.assert_called_once()
        assert not session.is_open

    def test_close_is_idempotent(self, driver):
        session = PlaywrightPageSession()
        session.open()

        session.close()
        session.close()

        driver.stop.assert_called_once()

    def test_cannot_open_twice(self, driver):
        session = PlaywrightPageSession()
        session.open()

        with pytest.raises(SessionError):
            session.open()

    def test_throttled_load_takes_permit_first(self, driver):
        session = PlaywrightPageSession()
        session.open()
        limiter = Mock()

        session.load_url_with_throttling("https://www.baeldung.com/", limiter)

        limiter.acquire.assert_called_once_with()
        assert session.url == "https://www.baeldung.com/"

    def test_evaluate_passes_argument(self, driver):
        session = PlaywrightPageSession()
        session.open()
        page = driver.chromium.launch.return_value.new_context.return_value.new_page.return_value
        page.evaluate.return_value = 2

        assert session.evaluate("(s) => 2", ".post-content") == 2
        page.evaluate.assert_called_once_with("(s) => 2", ".post-content")

    def test_factory_produces_unopened_sessions(self):
        factory = playwright_session_factory(PROXY_CONFIG)
        first, second = factory(), factory()

        assert first is not second
        assert first.config is PROXY_CONFIG
        assert not first.is_open

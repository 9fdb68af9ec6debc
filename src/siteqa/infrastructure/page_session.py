"""
Page Session Management.

A page session is one exclusively owned browser/page handle. Each worker
thread opens its own session (including its own Playwright driver, since the
sync API is bound to the thread that started it) and closes it when its URL
supply runs out.
"""

import logging
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from siteqa.browser_config import BrowserConfig, HEADLESS_CONFIG
from siteqa.exceptions import SessionError
from siteqa.infrastructure.proxy import ProxyConfig
from siteqa.infrastructure.rate_limiter import TokenBucketLimiter

logger = logging.getLogger(__name__)


@runtime_checkable
class PageSession(Protocol):
    """Capabilities the harness needs from a browser session."""

    @property
    def url(self) -> Optional[str]: ...

    def open(self) -> None: ...

    def open_with_proxy(self, proxy: ProxyConfig) -> None: ...

    def close(self) -> None: ...

    def load_url(self, url: str) -> None: ...

    def load_url_with_throttling(self, url: str, limiter: TokenBucketLimiter) -> None: ...

    def content(self) -> str: ...

    def evaluate(self, script: str, arg: Any = None) -> Any: ...


SessionFactory = Callable[[], PageSession]


class PlaywrightPageSession:
    """
    Playwright-backed page session (sync API).

    Usage:
        session = PlaywrightPageSession(config)
        session.open()
        try:
            session.load_url(url)
            html = session.content()
        finally:
            session.close()
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        """
        Initialize page session.

        Args:
            config: Browser configuration; HEADLESS_CONFIG when omitted
        """
        self.config = config or HEADLESS_CONFIG
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        self._url: Optional[str] = None

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def is_open(self) -> bool:
        return self._page is not None

    def open(self) -> None:
        """Launch a browser with a fresh context and page."""
        self._launch(proxy=None)

    def open_with_proxy(self, proxy: ProxyConfig) -> None:
        """Launch a browser whose traffic goes through `proxy`."""
        logger.info(f"Loading page using Proxy Server: {proxy.address}")
        self._launch(proxy=proxy)

    def _launch(self, proxy: Optional[ProxyConfig]) -> None:
        if self.is_open:
            raise SessionError("Session already open")

        try:
            from playwright.sync_api import sync_playwright
        except ImportError:
            raise ImportError(
                "playwright package not installed. "
                "Install with: pip install playwright && playwright install"
            )

        self._playwright = sync_playwright().start()
        try:
            browser_launcher = getattr(self._playwright, self.config.browser_type)

            launch_options: dict[str, Any] = {"headless": self.config.headless}
            if self.config.launch_args:
                launch_options["args"] = self.config.launch_args
            if proxy is not None:
                launch_options["proxy"] = proxy.playwright_proxy

            self._browser = browser_launcher.launch(**launch_options)
            self._context = self._browser.new_context(
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
                user_agent=self.config.get_user_agent(),
                ignore_https_errors=True,
            )
            self._context.set_default_timeout(self.config.implicit_wait)
            self._context.set_default_navigation_timeout(self.config.timeout)

            if self.config.block_resources:
                blocked = set(self.config.block_resources)
                self._context.route(
                    "**/*",
                    lambda route: (
                        route.abort()
                        if route.request.resource_type in blocked
                        else route.continue_()
                    )
                )

            self._page = self._context.new_page()
        except Exception:
            # Never leave a half-started browser behind
            self.close()
            raise

        logger.debug(f"Opened {self.config.browser_type} session (headless={self.config.headless})")

    def close(self) -> None:
        """Close page, context, browser and driver. Safe to call repeatedly."""
        for name, resource in (
            ("page", self._page),
            ("context", self._context),
            ("browser", self._browser),
        ):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as e:
                logger.warning(f"Error closing {name}: {e}")

        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None

    def _require_page(self):
        if self._page is None:
            raise SessionError("Session is not open. Call open() first.")
        return self._page

    def load_url(self, url: str) -> None:
        """Navigate to `url` and wait per the configured wait strategy."""
        page = self._require_page()
        self._url = url
        page.goto(url, wait_until=self.config.wait_until, timeout=self.config.timeout)

    def load_url_with_throttling(self, url: str, limiter: TokenBucketLimiter) -> None:
        """Take a permit from `limiter` (blocking), then navigate."""
        limiter.acquire()
        self.load_url(url)

    def content(self) -> str:
        """Rendered HTML of the current page."""
        return self._require_page().content()

    def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a JavaScript expression in the page and return its result."""
        page = self._require_page()
        if arg is None:
            return page.evaluate(script)
        return page.evaluate(script, arg)


def playwright_session_factory(config: Optional[BrowserConfig] = None) -> SessionFactory:
    """Factory producing unopened Playwright sessions sharing one config."""
    def factory() -> PageSession:
        return PlaywrightPageSession(config)
    return factory

"""
Browser configuration for Playwright page sessions.

This module provides a validated Pydantic configuration model for all browser-related
settings and pre-configured instances for common use cases.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from siteqa.config import settings
from siteqa.constants import (
    DEFAULT_PAGE_TIMEOUT_MS,
    DESKTOP_VIEWPORT_HEIGHT,
    DESKTOP_VIEWPORT_WIDTH,
)


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class BrowserConfig(BaseModel):
    """
    Configuration for a PlaywrightPageSession.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default=settings.HEADLESS_BROWSER,
        description="Browser engine to use"
    )

    timeout: int = Field(
        default=DEFAULT_PAGE_TIMEOUT_MS,
        description="Page load timeout in milliseconds",
        ge=1000,
        le=300000
    )

    implicit_wait: int = Field(
        default=5000,
        description="Default wait for element lookups in milliseconds",
        ge=0,
        le=60000
    )

    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="load",
        description="When to consider navigation complete"
    )

    viewport_width: int = Field(default=DESKTOP_VIEWPORT_WIDTH, ge=320)

    viewport_height: int = Field(default=DESKTOP_VIEWPORT_HEIGHT, ge=320)

    user_agent: Optional[str] = Field(
        default=None,
        description="Custom user agent. If None the default desktop agent is used."
    )

    block_resources: List[str] = Field(
        default_factory=list,
        description="Resource types to block (e.g., 'font', 'media')"
    )

    launch_args: List[str] = Field(
        default_factory=list,
        description="Additional browser launch arguments (e.g., '--disable-http2')"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True

    def get_user_agent(self) -> str:
        """Get the user agent to use for this config."""
        return self.user_agent or DEFAULT_USER_AGENT


# --- Pre-configured Instances for Common Use Cases ---

HEADLESS_CONFIG = BrowserConfig(
    headless=True,
    wait_until="load",
    timeout=DEFAULT_PAGE_TIMEOUT_MS,
    block_resources=["media"],
    launch_args=["--no-sandbox", "--disable-dev-shm-usage"],
)
"""
Default configuration for the concurrent article suite.

Waits for the full load event so the syntax highlighter and opt-in widgets
have rendered before checks inspect the DOM.
"""

PROXY_CONFIG = BrowserConfig(
    headless=True,
    wait_until="networkidle",
    timeout=60000,  # Proxy-routed loads are slow
    launch_args=["--no-sandbox", "--disable-dev-shm-usage"],
)
"""
Configuration for region-gated pages browsed through a proxy.

Uses a longer timeout and waits for network idle so geo-dependent pricing
has been fetched.
"""

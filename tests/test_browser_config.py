"""Tests for browser configuration."""

import pytest
from pydantic import ValidationError

from siteqa.browser_config import (
    DEFAULT_USER_AGENT,
    HEADLESS_CONFIG,
    PROXY_CONFIG,
    BrowserConfig,
)


class TestBrowserConfig:
    """Test cases for BrowserConfig."""

    def test_defaults(self):
        config = BrowserConfig()

        assert config.headless is True
        assert config.wait_until == "load"
        assert config.get_user_agent() == DEFAULT_USER_AGENT

    def test_custom_user_agent(self):
        assert BrowserConfig(user_agent="QA/1.0").get_user_agent() == "QA/1.0"

    def test_validation(self):
        with pytest.raises(ValidationError):
            BrowserConfig(timeout=10)
        with pytest.raises(ValidationError):
            BrowserConfig(browser_type="opera")

    def test_validate_assignment(self):
        config = BrowserConfig()
        with pytest.raises(ValidationError):
            config.wait_until = "whenever"

    def test_presets(self):
        assert HEADLESS_CONFIG.block_resources == ["media"]
        assert PROXY_CONFIG.wait_until == "networkidle"
        assert PROXY_CONFIG.timeout > HEADLESS_CONFIG.timeout

"""Tests for configuration loading."""

import json

import pytest

from siteqa.config import QAConfig
from siteqa.constants import DEFAULT_BASE_URL, DEFAULT_IGNORE_NEWER_THAN_WEEKS
from siteqa.exceptions import ConfigurationError


class TestQAConfig:
    """Test cases for QAConfig."""

    def test_defaults(self):
        config = QAConfig()

        assert config.base_url == DEFAULT_BASE_URL
        assert config.ignore_urls_newer_than_weeks == DEFAULT_IGNORE_NEWER_THAN_WEEKS
        assert config.max_retry_attempts == 5
        assert config.workers is None
        assert config.has_proxy is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SITEQA_BASE_URL", "https://staging.example.com")
        monkeypatch.setenv("SITEQA_IGNORE_URLS_NEWER_THAN_WEEKS", "4")
        monkeypatch.setenv("SITEQA_WORKERS", "6")
        monkeypatch.setenv("SITEQA_PROXY_HOST", "eu.proxy.example.com")
        monkeypatch.setenv("SITEQA_PROXY_PORT", "8080")
        monkeypatch.setenv("SITEQA_DISABLED_CHECKS", "no-overlapping-text, code-blocks-rendered")
        monkeypatch.setenv("SITEQA_RATE_LIMIT_PER_SECOND", "0.5")

        config = QAConfig.from_env()

        assert config.base_url == "https://staging.example.com"
        assert config.ignore_urls_newer_than_weeks == 4
        assert config.workers == 6
        assert config.has_proxy is True
        assert config.proxy_port == 8080
        assert config.disabled_checks == ["no-overlapping-text", "code-blocks-rendered"]
        assert config.rate_limit_per_second == 0.5

    def test_from_env_invalid_number(self, monkeypatch):
        monkeypatch.setenv("SITEQA_WORKERS", "many")

        with pytest.raises(ConfigurationError):
            QAConfig.from_env()

    def test_from_file(self, tmp_path):
        path = tmp_path / "siteqa.json"
        path.write_text(json.dumps({"workers": 3, "corpus_file": "urls.txt", "unknown": 1}))

        config = QAConfig.from_file(str(path))

        assert config.workers == 3
        assert config.corpus_file == "urls.txt"
        assert not hasattr(config, "unknown")

    def test_from_missing_file(self, tmp_path):
        assert QAConfig.from_file(str(tmp_path / "missing.json")) == QAConfig()

    def test_load_exclusion_lists(self, tmp_path):
        path = tmp_path / "exclusions.yaml"
        path.write_text(
            "empty-code-block:\n"
            "  - /java-streams\n"
            "all-long-running:\n"
            "  - https://www.baeldung.com/broken\n"
        )
        config = QAConfig(exclusion_list_file=str(path))

        assert config.load_exclusion_lists() == {
            "empty-code-block": ["/java-streams"],
            "all-long-running": ["https://www.baeldung.com/broken"],
        }

    def test_load_exclusion_lists_without_file(self):
        assert QAConfig().load_exclusion_lists() == {}

    def test_exclusion_list_must_be_mapping(self, tmp_path):
        path = tmp_path / "exclusions.yaml"
        path.write_text("- /java-streams\n")

        with pytest.raises(ConfigurationError):
            QAConfig(exclusion_list_file=str(path)).load_exclusion_lists()

    def test_exclusion_values_must_be_lists(self, tmp_path):
        path = tmp_path / "exclusions.yaml"
        path.write_text("empty-code-block: /java-streams\n")

        with pytest.raises(ConfigurationError):
            QAConfig(exclusion_list_file=str(path)).load_exclusion_lists()

    def test_to_dict_masks_password(self):
        config = QAConfig(proxy_username="qa", proxy_password="secret")
        data = config.to_dict()

        assert data["proxy_username"] == "qa"
        assert data["proxy_password"] == "***"

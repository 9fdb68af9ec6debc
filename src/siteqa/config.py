from dotenv import load_dotenv
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
import json
import os

import yaml

from siteqa.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_DRAFT_SITE_HOST,
    DEFAULT_IGNORE_NEWER_THAN_WEEKS,
    DEFAULT_MAX_RETRY_ATTEMPTS,
    DEFAULT_RATE_LIMIT_PER_SECOND,
    DEFAULT_VAT_COURSE_PAGE,
)
from siteqa.exceptions import ConfigurationError

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    HEADLESS_BROWSER = os.getenv("SITEQA_HEADLESS_BROWSER", "chromium")
    LOG_LEVEL = os.getenv("SITEQA_LOG_LEVEL", "INFO")


settings = Settings()


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class QAConfig:
    """Configuration for a validation run."""
    base_url: str = DEFAULT_BASE_URL
    ignore_urls_newer_than_weeks: int = DEFAULT_IGNORE_NEWER_THAN_WEEKS
    workers: Optional[int] = None  # None means os.cpu_count()

    # Corpus sources (corpus file wins when both are set)
    corpus_file: Optional[str] = None
    sitemap_url: Optional[str] = None

    draft_site_host: str = DEFAULT_DRAFT_SITE_HOST

    # EU proxy for the VAT pricing check
    proxy_host: Optional[str] = None
    proxy_port: Optional[int] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None
    vat_course_page: str = DEFAULT_VAT_COURSE_PAGE
    max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS

    # Throttled sequential traversal
    rate_limit_per_second: float = DEFAULT_RATE_LIMIT_PER_SECOND

    # Skip policy inputs
    disabled_checks: list[str] = field(default_factory=list)
    category_exclusions: dict[str, list[str]] = field(default_factory=dict)
    exclusion_list_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "QAConfig":
        """Load configuration from environment variables.

        Environment variables are prefixed with SITEQA_,
        e.g. SITEQA_IGNORE_URLS_NEWER_THAN_WEEKS=4

        Returns:
            QAConfig: Configuration instance with values from environment

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        try:
            workers = os.getenv("SITEQA_WORKERS")
            proxy_port = os.getenv("SITEQA_PROXY_PORT")
            return cls(
                base_url=os.getenv("SITEQA_BASE_URL", DEFAULT_BASE_URL),
                ignore_urls_newer_than_weeks=int(
                    os.getenv(
                        "SITEQA_IGNORE_URLS_NEWER_THAN_WEEKS",
                        str(DEFAULT_IGNORE_NEWER_THAN_WEEKS),
                    )
                ),
                workers=int(workers) if workers else None,
                corpus_file=os.getenv("SITEQA_CORPUS_FILE"),
                sitemap_url=os.getenv("SITEQA_SITEMAP_URL"),
                draft_site_host=os.getenv("SITEQA_DRAFT_SITE_HOST", DEFAULT_DRAFT_SITE_HOST),
                proxy_host=os.getenv("SITEQA_PROXY_HOST"),
                proxy_port=int(proxy_port) if proxy_port else None,
                proxy_username=os.getenv("SITEQA_PROXY_USERNAME"),
                proxy_password=os.getenv("SITEQA_PROXY_PASSWORD"),
                vat_course_page=os.getenv("SITEQA_VAT_COURSE_PAGE", DEFAULT_VAT_COURSE_PAGE),
                max_retry_attempts=int(
                    os.getenv("SITEQA_MAX_RETRY_ATTEMPTS", str(DEFAULT_MAX_RETRY_ATTEMPTS))
                ),
                rate_limit_per_second=float(
                    os.getenv(
                        "SITEQA_RATE_LIMIT_PER_SECOND", str(DEFAULT_RATE_LIMIT_PER_SECOND)
                    )
                ),
                disabled_checks=_split_list(os.getenv("SITEQA_DISABLED_CHECKS", "")),
                exclusion_list_file=os.getenv("SITEQA_EXCLUSION_LIST_FILE"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid SITEQA_ environment value: {e}") from e

    @classmethod
    def from_file(cls, path: str) -> "QAConfig":
        """Load configuration from a JSON configuration file.

        Unknown keys are ignored; missing keys keep their defaults.

        Args:
            path: Path to JSON configuration file

        Returns:
            QAConfig with values from file
        """
        config = cls()
        file_path = Path(path)

        if not file_path.exists():
            return config

        with open(file_path, 'r') as f:
            data = json.load(f)

        for field_name in config.__dataclass_fields__:
            if field_name in data:
                setattr(config, field_name, data[field_name])

        return config

    def load_exclusion_lists(self) -> dict[str, list[str]]:
        """Read per-check URL exclusion lists from the YAML exclusion file.

        The file maps check keys to lists of URL paths (or absolute URLs).

        Returns:
            Mapping of check key to excluded URLs, empty when no file is set

        Raises:
            ConfigurationError: If the file does not hold a mapping of lists
        """
        if not self.exclusion_list_file:
            return {}

        with open(self.exclusion_list_file, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Exclusion list file {self.exclusion_list_file} must contain a mapping"
            )

        exclusions: dict[str, list[str]] = {}
        for key, urls in data.items():
            if not isinstance(urls, list):
                raise ConfigurationError(f"Exclusions for {key} must be a list")
            exclusions[str(key)] = [str(url) for url in urls]
        return exclusions

    @property
    def has_proxy(self) -> bool:
        return bool(self.proxy_host and self.proxy_port)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary, masking the proxy password.

        Returns:
            Dictionary of all configuration values
        """
        values = {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }
        if values.get("proxy_password"):
            values["proxy_password"] = "***"
        return values

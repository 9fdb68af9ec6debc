"""Per-check, per-URL skip and exclusion rules."""

import logging
from typing import Iterable, Mapping, Optional
from urllib.parse import urlparse

from siteqa.config import QAConfig
from siteqa.constants import DEFAULT_IGNORE_NEWER_THAN_WEEKS, GLOBAL_EXCLUSION_KEY

logger = logging.getLogger(__name__)


def _normalize(url: str) -> str:
    """Reduce a URL or path to its path without trailing slash."""
    path = urlparse(url).path if "://" in url else url
    path = path.split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"


class SkipPolicy:
    """
    Decides whether a check runs for a URL.

    Nothing is cached: article age comes from the page that was just loaded,
    so every (check, URL) pair is evaluated fresh.
    """

    def __init__(
        self,
        ignore_newer_than_weeks: int = DEFAULT_IGNORE_NEWER_THAN_WEEKS,
        disabled_checks: Iterable[str] = (),
        url_exclusions: Optional[Mapping[str, Iterable[str]]] = None,
        category_exclusions: Optional[Mapping[str, Iterable[str]]] = None,
    ):
        """
        Initialize skip policy.

        Args:
            ignore_newer_than_weeks: Articles younger than this are skipped
            disabled_checks: Check keys that never run
            url_exclusions: Check key -> URLs or paths to skip for that check
            category_exclusions: Check key -> URL fragments identifying exempt categories
        """
        self.ignore_newer_than_weeks = ignore_newer_than_weeks
        self.disabled_checks = frozenset(disabled_checks)
        self._url_exclusions = {
            key: frozenset(_normalize(url) for url in urls)
            for key, urls in (url_exclusions or {}).items()
        }
        self._category_exclusions = {
            key: tuple(fragment.lower() for fragment in fragments)
            for key, fragments in (category_exclusions or {}).items()
        }

    @classmethod
    def from_config(cls, config: QAConfig) -> "SkipPolicy":
        return cls(
            ignore_newer_than_weeks=config.ignore_urls_newer_than_weeks,
            disabled_checks=config.disabled_checks,
            url_exclusions=config.load_exclusion_lists(),
            category_exclusions=config.category_exclusions,
        )

    def is_within_age_window(self, page_age_weeks: Optional[float]) -> bool:
        """True for articles still being edited. Undated pages are never skipped."""
        return page_age_weeks is not None and page_age_weeks < self.ignore_newer_than_weeks

    def is_excluded(self, check_key: str, url: str) -> bool:
        """True when `url` is on the explicit exclusion list for `check_key`."""
        excluded = self._url_exclusions.get(check_key)
        return bool(excluded) and _normalize(url) in excluded

    def in_excluded_category(
        self,
        check_key: str,
        url: str,
        extra_categories: Iterable[str] = (),
    ) -> bool:
        path = _normalize(url).lower()
        fragments = self._category_exclusions.get(check_key, ()) + tuple(
            fragment.lower() for fragment in extra_categories
        )
        return any(fragment in path for fragment in fragments)

    def should_skip(
        self,
        check_key: str,
        url: str,
        page_age_weeks: Optional[float] = None,
        compare_age: bool = True,
        extra_categories: Iterable[str] = (),
    ) -> bool:
        """
        Decide whether `check_key` is skipped for `url`.

        Args:
            check_key: Check about to run
            url: Loaded page
            page_age_weeks: Age of the loaded article, None if unknown
            compare_age: Whether the age window applies to this check
            extra_categories: Categories the check itself declares exempt

        Returns:
            True if the check must not run on this page
        """
        if check_key in self.disabled_checks:
            return True
        if self.is_excluded(check_key, url):
            logger.debug(f"{url} is excluded from {check_key}")
            return True
        if self.in_excluded_category(check_key, url, extra_categories):
            logger.debug(f"{url} belongs to a category exempt from {check_key}")
            return True
        if compare_age and self.is_within_age_window(page_age_weeks):
            return True
        return False

    def should_skip_url(
        self,
        url: str,
        page_age_weeks: Optional[float] = None,
        check_age: bool = True,
    ) -> bool:
        """
        Global rule applied before any check is considered for a URL.

        The age window is part of it only with `check_age`; callers running
        an age-exempt check leave the window to should_skip.
        """
        if check_age and self.is_within_age_window(page_age_weeks):
            logger.info(
                f"Skipping {url} as it's newer than {self.ignore_newer_than_weeks} weeks"
            )
            return True
        if self.is_excluded(GLOBAL_EXCLUSION_KEY, url):
            logger.info(f"Skipping {url} as it's on the global exclusion list")
            return True
        return False

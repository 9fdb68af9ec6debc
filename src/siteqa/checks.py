"""Article checks and the registry that holds them.

Every check is an independent unit behind one interface,
`evaluate(page) -> Outcome`. Checks only read the page they are given; the
worker owns recording, so checks hold no state shared across pages or threads.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from siteqa.constants import CATEGORY_JAVA_WEEKLY, MAX_ATTRIBUTE_VALUE_LENGTH
from siteqa.content_model import ArticlePage
from siteqa.models import PASS, Fail, Outcome

logger = logging.getLogger(__name__)


class CheckKey(str, Enum):
    """Stable identifiers used for skip lookups and as aggregation keys."""
    EMPTY_CODE_BLOCK = "empty-code-block"
    SINGLE_SHORTCODE_AT_TOP = "single-shortcode-at-top"
    SINGLE_SHORTCODE_AT_END = "single-shortcode-at-end"
    IMAGE_ALT_ATTRIBUTE = "image-alt-attribute"
    EXCERPT_MATCHES_DESCRIPTION = "excerpt-matches-description"
    DRAFT_SITE_IMAGES = "draft-site-images"
    META_IMAGE_ABSOLUTE_PATH = "meta-image-absolute-path"
    CODE_BLOCKS_RENDERED = "code-blocks-rendered"
    NO_OVERLAPPING_TEXT = "no-overlapping-text"
    SINGLE_OPTIN_IN_SIDEBAR = "single-optin-in-sidebar"
    SINGLE_OPTIN_AFTER_CONTENT = "single-optin-after-content"
    VAT_PRICES_IN_EU = "vat-prices-in-eu"


def _join_values(values: Iterable[str]) -> str:
    return ", ".join(value[:MAX_ATTRIBUTE_VALUE_LENGTH] for value in values)


class Check(ABC):
    """
    A named, independently failable validation rule.

    Class attributes declare the check's own skip predicates:
    `compare_age` (whether the "newer than K weeks" window applies) and
    `excluded_categories` (URL fragments of article categories exempt from it).
    A worker skips new articles outright only while every selected check
    compares age; otherwise the window is applied per check.
    `settle_seconds` asks the worker to wait after loading before the page is
    inspected.
    """

    key: str = ""
    description: str = ""
    compare_age: bool = True
    excluded_categories: Tuple[str, ...] = ()
    settle_seconds: float = 0.0

    @abstractmethod
    def evaluate(self, page: ArticlePage) -> Outcome:
        """Return PASS or Fail(detail, count) for the loaded page."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r})"


class EmptyCodeBlockCheck(Check):
    key = CheckKey.EMPTY_CODE_BLOCK.value
    description = "Article has no empty code block"

    def evaluate(self, page: ArticlePage) -> Outcome:
        empty = page.empty_code_blocks()
        if empty:
            return Fail(detail=f"{len(empty)} empty code block(s)", count=len(empty))
        return PASS


class _SingleShortcodeCheck(Check):
    excluded_categories = (CATEGORY_JAVA_WEEKLY,)
    position = ""

    @abstractmethod
    def _shortcodes(self, page: ArticlePage) -> list:
        """Shortcode boxes at this check's position."""

    def evaluate(self, page: ArticlePage) -> Outcome:
        found = len(self._shortcodes(page))
        if found != 1:
            return Fail(detail=f"found {found} shortcodes at the {self.position}")
        return PASS


class SingleShortcodeAtTopCheck(_SingleShortcodeCheck):
    key = CheckKey.SINGLE_SHORTCODE_AT_TOP.value
    description = "Article has a single shortcode at the top"
    position = "top"

    def _shortcodes(self, page: ArticlePage) -> list:
        return page.shortcodes_at_top()


class SingleShortcodeAtEndCheck(_SingleShortcodeCheck):
    key = CheckKey.SINGLE_SHORTCODE_AT_END.value
    description = "Article has a single shortcode at the end"
    position = "end"

    def _shortcodes(self, page: ArticlePage) -> list:
        return page.shortcodes_at_end()


class ImageAltAttributeCheck(Check):
    key = CheckKey.IMAGE_ALT_ATTRIBUTE.value
    description = "Images do not have an empty alt attribute"

    def evaluate(self, page: ArticlePage) -> Outcome:
        sources = page.images_with_empty_alt()
        if sources:
            return Fail(detail=_join_values(sources), count=len(sources))
        return PASS


class ExcerptMatchesDescriptionCheck(Check):
    key = CheckKey.EXCERPT_MATCHES_DESCRIPTION.value
    description = "Excerpt is not empty and matches the meta description"

    def evaluate(self, page: ArticlePage) -> Outcome:
        description = page.meta_description()
        excerpt = page.meta_excerpt()
        if not (excerpt or "").strip() or excerpt != description:
            return Fail(detail=f"description : [{description}], excerpt : [{excerpt}]")
        return PASS


class DraftSiteImagesCheck(Check):
    """Images and image links must not point to the drafts site.

    Both kinds of offending element count towards severity.
    """

    key = CheckKey.DRAFT_SITE_IMAGES.value
    description = "Images do not point to the drafts site"

    def evaluate(self, page: ArticlePage) -> Outcome:
        images = page.images_pointing_to_draft_site()
        anchors = page.anchors_to_image_on_draft_site()
        if not images and not anchors:
            return PASS

        parts = []
        if images:
            parts.append(f"img: {_join_values(images)}")
        if anchors:
            parts.append(f"a: {_join_values(anchors)}")
        return Fail(detail="; ".join(parts), count=len(images) + len(anchors))


class MetaImageAbsolutePathCheck(Check):
    key = CheckKey.META_IMAGE_ABSOLUTE_PATH.value
    description = "og:image and twitter:image point to an absolute path"

    def evaluate(self, page: ArticlePage) -> Outcome:
        failing = []
        if not page.og_image_absolute_path():
            failing.append("og:image")
        if not page.twitter_image_absolute_path():
            failing.append("twitter:image")
        if failing:
            logger.info(f"og:image or twitter:image check failed for: {page.url}")
            return Fail(detail=f"{' and '.join(failing)} not absolute")
        return PASS


class CodeBlocksRenderedCheck(Check):
    key = CheckKey.CODE_BLOCKS_RENDERED.value
    description = "Code blocks are rendered properly"
    excluded_categories = (CATEGORY_JAVA_WEEKLY,)

    def __init__(self, settle_seconds: float = 0.0):
        self.settle_seconds = settle_seconds

    def evaluate(self, page: ArticlePage) -> Outcome:
        if page.has_broken_code_block():
            return Fail(detail="unrendered code block")
        return PASS


class NoOverlappingTextCheck(Check):
    key = CheckKey.NO_OVERLAPPING_TEXT.value
    description = "Article does not contain overlapping text"

    def evaluate(self, page: ArticlePage) -> Outcome:
        overlaps = page.overlapping_text()
        if overlaps:
            return Fail(detail=f"{overlaps} overlapping text block pair(s)", count=overlaps)
        return PASS


class _SingleOptinCheck(Check):
    # Opt-ins are placed on new articles right away
    compare_age = False
    location = ""

    @abstractmethod
    def _optins(self, page: ArticlePage) -> int:
        """Number of opt-ins at this check's location."""

    def evaluate(self, page: ArticlePage) -> Outcome:
        found = self._optins(page)
        if found != 1:
            logger.info(
                f"page found which doesn't have a single Opt-in in the {self.location} {page.url}"
            )
            return Fail(detail=f"found {found} opt-ins in the {self.location}")
        return PASS


class SingleOptinInSidebarCheck(_SingleOptinCheck):
    key = CheckKey.SINGLE_OPTIN_IN_SIDEBAR.value
    description = "Article has a single opt-in in the sidebar"
    location = "sidebar"

    def _optins(self, page: ArticlePage) -> int:
        return page.optins_in_sidebar()


class SingleOptinAfterContentCheck(_SingleOptinCheck):
    key = CheckKey.SINGLE_OPTIN_AFTER_CONTENT.value
    description = "Article has a single opt-in after the post content"
    location = "after post content"

    def _optins(self, page: ArticlePage) -> int:
        return page.optins_in_after_post_content()


class VatPricesInEUCheck(Check):
    """Course page shows VAT-inclusive prices when browsed from the EU."""

    key = CheckKey.VAT_PRICES_IN_EU.value
    description = "VAT prices are shown on the course page in an EU country"
    compare_age = False

    def __init__(self, proxy_address: Optional[str] = None):
        self.proxy_address = proxy_address

    def evaluate(self, page: ArticlePage) -> Outcome:
        if not page.vat_prices_available():
            return Fail(
                detail=f"VAT prices not displayed in EU region. Proxy Server:{self.proxy_address}"
            )
        return PASS


class CheckRegistry:
    """
    Ordered collection of checks keyed by their stable key.

    Checks can be registered and removed without touching the worker or the
    orchestrator; iteration follows registration order.
    """

    def __init__(self, checks: Iterable[Check] = ()):
        self._checks: Dict[str, Check] = {}
        for check in checks:
            self.register(check)

    def register(self, check: Check) -> None:
        """
        Add a check.

        Raises:
            ValueError: If the check has no key or the key is already taken
        """
        if not check.key:
            raise ValueError(f"{check!r} has no key")
        if check.key in self._checks:
            raise ValueError(f"Check {check.key} already registered")
        self._checks[check.key] = check

    def unregister(self, key: str) -> Check:
        """Remove and return a check. Raises KeyError if unknown."""
        return self._checks.pop(str(getattr(key, "value", key)))

    def get(self, key: str) -> Check:
        """Look up a check. Raises KeyError if unknown."""
        return self._checks[str(getattr(key, "value", key))]

    def keys(self) -> List[str]:
        return list(self._checks)

    def select(self, keys: Optional[Iterable[str]] = None) -> List[Check]:
        """
        Checks for the given keys, in the order given.

        Args:
            keys: Keys (or CheckKey members) to select; all checks when None

        Raises:
            KeyError: If a key is not registered
        """
        if keys is None:
            return list(self._checks.values())
        return [self.get(key) for key in keys]

    def __contains__(self, key: object) -> bool:
        return str(getattr(key, "value", key)) in self._checks

    def __iter__(self) -> Iterator[Check]:
        return iter(list(self._checks.values()))

    def __len__(self) -> int:
        return len(self._checks)


def article_checks() -> List[Check]:
    """Fresh instances of the eleven article checks."""
    return [
        EmptyCodeBlockCheck(),
        SingleShortcodeAtTopCheck(),
        SingleOptinInSidebarCheck(),
        SingleOptinAfterContentCheck(),
        SingleShortcodeAtEndCheck(),
        DraftSiteImagesCheck(),
        MetaImageAbsolutePathCheck(),
        CodeBlocksRenderedCheck(),
        NoOverlappingTextCheck(),
        ImageAltAttributeCheck(),
        ExcerptMatchesDescriptionCheck(),
    ]


def default_registry() -> CheckRegistry:
    """Registry holding the eleven article checks."""
    return CheckRegistry(article_checks())

"""Page-object layer turning a loaded article's DOM into typed predicates."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from siteqa.constants import (
    AFTER_POST_CONTENT_OPTIN_SELECTOR,
    CODE_BLOCK_SELECTOR,
    DEFAULT_DRAFT_SITE_HOST,
    IMAGE_EXTENSIONS,
    META_MODIFIED_TIME,
    META_PUBLISHED_TIME,
    POST_CONTENT_SELECTOR,
    SHORTCODE_END_SELECTOR,
    SHORTCODE_TOP_SELECTOR,
    SIDEBAR_OPTIN_SELECTOR,
    UNRENDERED_CODE_BLOCK_SELECTOR,
    VAT_PRICE_SELECTOR,
)
from siteqa.exceptions import SessionError

logger = logging.getLogger(__name__)


# Counts pairs of text blocks in the post body whose boxes intersect. Nested
# elements are ignored, only siblings in the flow can overlap by mistake.
OVERLAPPING_TEXT_SCRIPT = """
(selector) => {
    const root = document.querySelector(selector);
    if (!root) { return 0; }
    const blocks = Array.from(root.querySelectorAll('p, h1, h2, h3, h4, h5, h6, li'))
        .filter(el => el.innerText && el.innerText.trim().length > 0)
        .map(el => ({ el: el, rect: el.getBoundingClientRect() }))
        .filter(b => b.rect.width > 0 && b.rect.height > 0);
    let overlaps = 0;
    for (let i = 0; i < blocks.length; i++) {
        for (let j = i + 1; j < blocks.length; j++) {
            const a = blocks[i], b = blocks[j];
            if (a.el.contains(b.el) || b.el.contains(a.el)) { continue; }
            const w = Math.min(a.rect.right, b.rect.right) - Math.max(a.rect.left, b.rect.left);
            const h = Math.min(a.rect.bottom, b.rect.bottom) - Math.max(a.rect.top, b.rect.top);
            if (w > 1 && h > 1) { overlaps++; }
        }
    }
    return overlaps;
}
"""


class ArticlePage:
    """
    Read-only view of one loaded article.

    Structural predicates are answered from the rendered HTML; predicates that
    depend on layout are evaluated in the live page through `evaluate`.
    """

    def __init__(
        self,
        url: str,
        html: str,
        evaluate: Optional[Callable[..., Any]] = None,
        draft_site_host: str = DEFAULT_DRAFT_SITE_HOST,
        now: Optional[datetime] = None,
    ):
        """
        Initialize article page.

        Args:
            url: Address the page was loaded from
            html: Rendered HTML
            evaluate: In-page JavaScript evaluator of the live session
            draft_site_host: Staging host that must not appear in content
            now: Reference time for age calculations (defaults to current UTC time)
        """
        self.url = url
        self.draft_site_host = draft_site_host.lower()
        self._evaluate = evaluate
        self._now = now
        self.soup = BeautifulSoup(html, "html.parser")

    @classmethod
    def from_session(cls, session, draft_site_host: str = DEFAULT_DRAFT_SITE_HOST) -> "ArticlePage":
        """Snapshot the session's current page."""
        return cls(
            url=session.url,
            html=session.content(),
            evaluate=session.evaluate,
            draft_site_host=draft_site_host,
        )

    # --- Code blocks ---

    def empty_code_blocks(self) -> List[Any]:
        return [
            block for block in self.soup.select(CODE_BLOCK_SELECTOR)
            if not block.get_text(strip=True)
        ]

    def has_broken_code_block(self) -> bool:
        """True when a code block still carries the raw highlighter markup."""
        return bool(self.soup.select(UNRENDERED_CODE_BLOCK_SELECTOR))

    # --- Shortcodes ---

    def shortcodes_at_top(self) -> List[Any]:
        return self.soup.select(SHORTCODE_TOP_SELECTOR)

    def shortcodes_at_end(self) -> List[Any]:
        return self.soup.select(SHORTCODE_END_SELECTOR)

    # --- Images and anchors ---

    def images_with_empty_alt(self) -> List[str]:
        """src of every post image whose alt attribute is missing or blank."""
        return [
            img.get("src", "")
            for img in self.soup.select(f"{POST_CONTENT_SELECTOR} img")
            if not (img.get("alt") or "").strip()
        ]

    def _on_draft_site(self, value: str) -> bool:
        host = urlparse(value).netloc.lower()
        return host == self.draft_site_host or host.endswith("." + self.draft_site_host)

    def images_pointing_to_draft_site(self) -> List[str]:
        return [
            img.get("src", "")
            for img in self.soup.select(f"{POST_CONTENT_SELECTOR} img[src]")
            if self._on_draft_site(img.get("src", ""))
        ]

    def anchors_to_image_on_draft_site(self) -> List[str]:
        hrefs = []
        for anchor in self.soup.select(f"{POST_CONTENT_SELECTOR} a[href]"):
            href = anchor.get("href", "")
            path = urlparse(href).path.lower()
            if self._on_draft_site(href) and path.endswith(IMAGE_EXTENSIONS):
                hrefs.append(href)
        return hrefs

    # --- Meta tags ---

    def _meta_content(self, **attrs) -> Optional[str]:
        tag = self.soup.find("meta", attrs=attrs)
        if tag is None:
            return None
        return tag.get("content")

    def meta_description(self) -> Optional[str]:
        return self._meta_content(name="description")

    def meta_excerpt(self) -> Optional[str]:
        return self._meta_content(name="excerpt")

    @staticmethod
    def _is_absolute(value: Optional[str]) -> bool:
        if not value:
            return False
        parsed = urlparse(value.strip())
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    def og_image_absolute_path(self) -> bool:
        return self._is_absolute(self._meta_content(property="og:image"))

    def twitter_image_absolute_path(self) -> bool:
        return self._is_absolute(self._meta_content(name="twitter:image"))

    # --- Layout ---

    def overlapping_text(self) -> int:
        """Number of intersecting text block pairs in the post body."""
        if self._evaluate is None:
            raise SessionError("Overlapping text detection needs a live page session")
        return int(self._evaluate(OVERLAPPING_TEXT_SCRIPT, POST_CONTENT_SELECTOR) or 0)

    # --- Opt-in widgets ---

    def optins_in_sidebar(self) -> int:
        return len(self.soup.select(SIDEBAR_OPTIN_SELECTOR))

    def optins_in_after_post_content(self) -> int:
        return len(self.soup.select(AFTER_POST_CONTENT_OPTIN_SELECTOR))

    # --- Pricing ---

    def vat_prices_available(self) -> bool:
        return bool(self.soup.select(VAT_PRICE_SELECTOR))

    # --- Age ---

    def published_at(self) -> Optional[datetime]:
        """Publication time from article meta, falling back to modification time."""
        for prop in (META_PUBLISHED_TIME, META_MODIFIED_TIME):
            value = self._meta_content(property=prop)
            if not value:
                continue
            try:
                parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            except ValueError:
                logger.debug(f"Unparseable {prop} '{value}' on {self.url}")
                continue
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        return None

    def page_age_in_weeks(self) -> Optional[float]:
        """Weeks since publication, or None when the page carries no date."""
        published = self.published_at()
        if published is None:
            return None
        now = self._now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return (now - published).total_seconds() / (7 * 24 * 3600)

    def is_newer_than(self, weeks: int) -> bool:
        age = self.page_age_in_weeks()
        return age is not None and age < weeks

# src/siteqa/constants.py
"""Centralized constants for the article QA harness.

This module contains default values and DOM selectors that are used across
multiple modules. For user-configurable settings, see config.py and QAConfig.
"""

# =============================================================================
# Site Constants
# =============================================================================

# Default site under test when no base URL is configured
DEFAULT_BASE_URL = "https://www.baeldung.com"

# Editorial staging host whose URLs must never leak into published articles
DEFAULT_DRAFT_SITE_HOST = "drafts.baeldung.com"

# Course page used by the EU VAT pricing check
DEFAULT_VAT_COURSE_PAGE = "/course-rws-early-access"

# Recurring digest article exempt from shortcode and code-block checks
CATEGORY_JAVA_WEEKLY = "java-weekly"

# Global exclusion-list key consulted before any check runs on a URL
GLOBAL_EXCLUSION_KEY = "all-long-running"

# Aggregation key for pages that could not be loaded
PAGE_LOAD_FAILURE_KEY = "page-load"

# Aggregation key for pages the link crawl could not fetch
CRAWL_FETCH_FAILURE_KEY = "crawl-fetch"


# =============================================================================
# Orchestration Constants
# =============================================================================

# Articles newer than this many weeks are still being edited and are skipped
DEFAULT_IGNORE_NEWER_THAN_WEEKS = 2

# Maximum attempts for the proxy-routed retry flow
DEFAULT_MAX_RETRY_ATTEMPTS = 5

# Default permits per second for throttled sequential traversal
DEFAULT_RATE_LIMIT_PER_SECOND = 2.0

# Error messages are truncated to this length in worker logs
ERROR_MESSAGE_LOG_LIMIT = 100

# Pause before inspecting code blocks when run on their own, lets the
# syntax highlighter finish rendering
CODE_BLOCK_RENDER_WAIT_SECONDS = 1.0


# =============================================================================
# Browser Constants
# =============================================================================

# Default navigation timeout in milliseconds
DEFAULT_PAGE_TIMEOUT_MS = 30000

# Desktop viewport dimensions
DESKTOP_VIEWPORT_WIDTH = 1920
DESKTOP_VIEWPORT_HEIGHT = 1080


# =============================================================================
# Content Model Selectors
# =============================================================================

POST_CONTENT_SELECTOR = ".post-content"

CODE_BLOCK_SELECTOR = ".post-content pre"

# Code blocks still carrying the raw highlighter class were never rendered
UNRENDERED_CODE_BLOCK_SELECTOR = '.post-content pre[class*="brush:"]'

SHORTCODE_TOP_SELECTOR = ".post-content .short_box.short_start"

SHORTCODE_END_SELECTOR = ".post-content .short_box.short_end"

SIDEBAR_OPTIN_SELECTOR = '.sidebar [id^="tve-leads-"], .sidebar .tve-leads-widget'

AFTER_POST_CONTENT_OPTIN_SELECTOR = (
    '.after-post-content [id^="tve-leads-"], .after-post-content .tve-leads-post-footer'
)

VAT_PRICE_SELECTOR = ".price-with-vat, .vat-price"

META_PUBLISHED_TIME = "article:published_time"

META_MODIFIED_TIME = "article:modified_time"

# File extensions treated as images when inspecting anchor hrefs
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")

# Maximum characters for truncating offending attribute values in details
MAX_ATTRIBUTE_VALUE_LENGTH = 200


# =============================================================================
# Link Crawler Constants
# =============================================================================

DEFAULT_TUTORIALS_REPO_URL = "https://github.com/eugenp/tutorials"

DEFAULT_CRAWL_MAX_PAGES = 500

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30

"""
Infrastructure Package.

Page sessions, proxy configuration and rate limiting for the worker pool.
"""

from .page_session import (
    PageSession,
    PlaywrightPageSession,
    SessionFactory,
    playwright_session_factory,
)
from .proxy import (
    ProxyConfig,
)
from .rate_limiter import (
    TokenBucketLimiter,
    get_shared_limiter,
    reset_shared_limiter,
)

__all__ = [
    # Page Session
    "PageSession",
    "PlaywrightPageSession",
    "SessionFactory",
    "playwright_session_factory",
    # Proxy
    "ProxyConfig",
    # Rate Limiter
    "TokenBucketLimiter",
    "get_shared_limiter",
    "reset_shared_limiter",
]

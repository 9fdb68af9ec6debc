"""Shared fixtures: fake page sessions serving static article HTML."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from siteqa.exceptions import SessionError
from siteqa.infrastructure.rate_limiter import reset_shared_limiter

OLD_DATE = "2020-01-01T00:00:00+00:00"


def build_article(
    body="<p>Some article text</p>",
    published=OLD_DATE,
    description="Learn the basics",
    excerpt="Learn the basics",
    og_image="https://www.baeldung.com/wp-content/uploads/cover.png",
    twitter_image="https://www.baeldung.com/wp-content/uploads/cover.png",
    sidebar_optins=1,
    after_content_optins=1,
    shortcodes=True,
):
    """Render a well-formed article page; every check passes by default."""
    meta = []
    if published:
        meta.append(f'<meta property="article:published_time" content="{published}">')
    if description is not None:
        meta.append(f'<meta name="description" content="{description}">')
    if excerpt is not None:
        meta.append(f'<meta name="excerpt" content="{excerpt}">')
    if og_image is not None:
        meta.append(f'<meta property="og:image" content="{og_image}">')
    if twitter_image is not None:
        meta.append(f'<meta name="twitter:image" content="{twitter_image}">')

    top = '<div class="short_box short_start">Get started</div>' if shortcodes else ""
    end = '<div class="short_box short_end">Full source</div>' if shortcodes else ""
    sidebar = '<div class="tve-leads-widget">Opt-in</div>' * sidebar_optins
    after = '<div class="tve-leads-post-footer">Opt-in</div>' * after_content_optins

    return f"""
    <html>
        <head>{''.join(meta)}</head>
        <body>
            <div class="post-content">{top}{body}{end}</div>
            <div class="after-post-content">{after}</div>
            <div class="sidebar">{sidebar}</div>
        </body>
    </html>
    """


def days_ago(days):
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


class FakeSession:
    """In-memory page session serving canned HTML by URL."""

    def __init__(self, pages, overlaps=None, fail_open=False, fail_urls=()):
        self.pages = pages
        self.overlaps = overlaps or {}
        self.fail_open = fail_open
        self.fail_urls = set(fail_urls)
        self.opened = False
        self.close_calls = 0
        self.loaded = []
        self.proxy = None
        self._url = None

    @property
    def url(self):
        return self._url

    @property
    def closed(self):
        return self.close_calls > 0

    def open(self):
        if self.fail_open:
            raise SessionError("browser failed to start")
        self.opened = True

    def open_with_proxy(self, proxy):
        self.proxy = proxy
        self.open()

    def close(self):
        self.close_calls += 1
        self.opened = False

    def load_url(self, url):
        if not self.opened:
            raise SessionError("Session is not open. Call open() first.")
        if url in self.fail_urls:
            raise TimeoutError(f"Timeout loading {url}")
        self._url = url
        self.loaded.append(url)

    def load_url_with_throttling(self, url, limiter):
        limiter.acquire()
        self.load_url(url)

    def content(self):
        return self.pages.get(self._url, build_article())

    def evaluate(self, script, arg=None):
        return self.overlaps.get(self._url, 0)


class FakeSessionFactory:
    """Session factory remembering every session it produced."""

    def __init__(self, pages, **session_kwargs):
        self.pages = pages
        self.session_kwargs = session_kwargs
        self.sessions = []
        self._lock = threading.Lock()

    def __call__(self):
        session = FakeSession(self.pages, **self.session_kwargs)
        with self._lock:
            self.sessions.append(session)
        return session

    @property
    def loaded_urls(self):
        urls = []
        for session in self.sessions:
            urls.extend(session.loaded)
        return urls


@pytest.fixture
def make_article():
    """Builder for article HTML."""
    return build_article


@pytest.fixture
def recent_date():
    """ISO timestamp of an article published yesterday."""
    return days_ago(1)


@pytest.fixture
def session_factory_cls():
    return FakeSessionFactory


@pytest.fixture(autouse=True)
def fresh_shared_limiter():
    """Each test starts without a process-wide limiter."""
    reset_shared_limiter()
    yield
    reset_shared_limiter()


@pytest.fixture
def session_cls():
    return FakeSession

"""Crawl a tutorials repository and flag incorrectly linked URLs."""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from siteqa.constants import (
    DEFAULT_CRAWL_MAX_PAGES,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_TUTORIALS_REPO_URL,
)

logger = logging.getLogger(__name__)


@dataclass
class CrawlResult:
    """Outcome of a crawl for one rule."""
    rule: str
    matching_urls: Dict[str, List[str]] = field(default_factory=dict)  # page -> flagged links
    pages_crawled: int = 0
    errors: Dict[str, str] = field(default_factory=dict)  # page -> error message

    @property
    def flagged_urls(self) -> List[str]:
        flagged = []
        for links in self.matching_urls.values():
            flagged.extend(links)
        return flagged


class CrawlRule(ABC):
    """Decides which pages to visit and which links on them to flag."""

    name: str = ""

    @abstractmethod
    def seeds(self) -> List[str]:
        """Start URLs."""

    @abstractmethod
    def should_visit(self, url: str) -> bool:
        """Whether a discovered link is part of the crawl."""

    @abstractmethod
    def inspect(self, page_url: str, soup: BeautifulSoup) -> List[str]:
        """Flagged links found on a page."""


class IncorrectlyLinkedUrlsRule(CrawlRule):
    """
    Flags links that leave the canonical repository.

    A link is incorrect when it points at the same repository on a branch
    other than the default one, or at a fork of the repository.
    """

    name = "incorrectly-linked-urls"

    def __init__(self, repo_url: str = DEFAULT_TUTORIALS_REPO_URL, branch: str = "master"):
        parsed = urlparse(repo_url.rstrip("/"))
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) < 2:
            raise ValueError(f"Repository URL must include owner and name: {repo_url}")
        self.repo_url = repo_url.rstrip("/")
        self.host = parsed.netloc.lower()
        self.owner, self.repo = parts[0].lower(), parts[1].lower()
        self.branch = branch

    def seeds(self) -> List[str]:
        return [self.repo_url]

    def _repo_path(self, url: str) -> Optional[List[str]]:
        parsed = urlparse(url)
        if parsed.netloc.lower() != self.host:
            return None
        return [p for p in parsed.path.split("/") if p]

    def should_visit(self, url: str) -> bool:
        parts = self._repo_path(url)
        if not parts or len(parts) < 2:
            return False
        if (parts[0].lower(), parts[1].lower()) != (self.owner, self.repo):
            return False
        if len(parts) == 2:
            return True
        # Only directory listings on the default branch carry module READMEs
        return len(parts) >= 4 and parts[2] == "tree" and parts[3] == self.branch

    def is_incorrect(self, url: str) -> bool:
        parts = self._repo_path(url)
        if not parts or len(parts) < 2 or parts[1].lower() != self.repo:
            return False
        if parts[0].lower() != self.owner:
            return True  # fork
        if len(parts) >= 4 and parts[2] in ("tree", "blob"):
            return parts[3] != self.branch
        return False

    def inspect(self, page_url: str, soup: BeautifulSoup) -> List[str]:
        flagged = []
        for anchor in soup.find_all("a", href=True):
            link = urldefrag(urljoin(page_url, anchor["href"]))[0]
            if self.is_incorrect(link) and link not in flagged:
                flagged.append(link)
        return flagged


class LinkCrawlController:
    """
    Breadth-first crawl driven by a CrawlRule.

    Each level of the frontier is fetched in parallel. Every call to
    start_crawl keeps its own visited set, so a controller can be reused.
    Every thread keeps its own requests session.
    """

    def __init__(
        self,
        max_pages: int = DEFAULT_CRAWL_MAX_PAGES,
        timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        user_agent: str = "Mozilla/5.0 (compatible; siteqa/1.0)",
    ):
        self.max_pages = max_pages
        self.timeout = timeout
        self.user_agent = user_agent
        self._local = threading.local()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": self.user_agent})
            self._local.session = session
        return session

    def _claim(self, visited: Set[str], url: str) -> bool:
        """Mark `url` visited; False if it already was or max_pages is reached."""
        if url in visited or len(visited) >= self.max_pages:
            return False
        visited.add(url)
        return True

    def _fetch(self, url: str) -> Tuple[str, Optional[BeautifulSoup], Optional[str]]:
        try:
            response = self._session().get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            return url, None, str(e)
        return url, BeautifulSoup(response.text, "html.parser"), None

    def start_crawl(self, rule: CrawlRule, parallelism: int) -> CrawlResult:
        """
        Crawl from the rule's seeds and collect flagged links.

        Args:
            rule: Crawl rule to apply
            parallelism: Number of fetch threads

        Returns:
            CrawlResult with flagged links grouped by the page they were found on
        """
        result = CrawlResult(rule=rule.name)
        visited: Set[str] = set()
        frontier = [url for url in rule.seeds() if self._claim(visited, url)]

        logger.info(f"Starting crawl '{rule.name}' with {parallelism} threads")
        with ThreadPoolExecutor(max_workers=max(1, parallelism), thread_name_prefix="siteqa-crawl") as executor:
            while frontier:
                next_frontier: List[str] = []
                for url, soup, error in executor.map(self._fetch, frontier):
                    result.pages_crawled += 1
                    if error is not None:
                        logger.warning(f"Failed to fetch {url}: {error}")
                        result.errors[url] = error
                        continue

                    flagged = rule.inspect(url, soup)
                    if flagged:
                        result.matching_urls[url] = flagged

                    for anchor in soup.find_all("a", href=True):
                        link = urldefrag(urljoin(url, anchor["href"]))[0]
                        if rule.should_visit(link) and self._claim(visited, link):
                            next_frontier.append(link)
                frontier = next_frontier

        logger.info(
            f"Crawl '{rule.name}' finished: {result.pages_crawled} pages, "
            f"{len(result.flagged_urls)} flagged links"
        )
        return result

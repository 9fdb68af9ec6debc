"""Produce the ordered URL corpus for a run."""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import urljoin
from xml.etree import ElementTree as ET

import requests

from siteqa.config import QAConfig
from siteqa.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from siteqa.exceptions import CorpusError

logger = logging.getLogger(__name__)

SITEMAP_NS = '{http://www.sitemaps.org/schemas/sitemap/0.9}'


def _dedupe(urls: Iterable[str]) -> List[str]:
    """Drop repeats while keeping first-seen order."""
    seen = set()
    ordered = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def to_absolute(base_url: str, path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    return urljoin(base_url.rstrip("/") + "/", path.lstrip("/"))


def load_corpus_file(path: str, base_url: str) -> List[str]:
    """
    Read article paths, one per line, and make them absolute.

    Blank lines and lines starting with '#' are ignored.

    Args:
        path: Text file of relative article paths (or absolute URLs)
        base_url: Site root the paths are relative to

    Returns:
        Ordered, de-duplicated absolute URLs

    Raises:
        CorpusError: If the file cannot be read
    """
    file_path = Path(path)
    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise CorpusError(f"Cannot read corpus file {path}: {e}") from e

    urls = [
        to_absolute(base_url, line.strip())
        for line in lines
        if line.strip() and not line.strip().startswith("#")
    ]
    logger.info(f"Loaded {len(urls)} article URLs from {path}")
    return _dedupe(urls)


class SitemapParser:
    """
    Parse XML sitemaps to extract article URLs.

    Supports standard sitemap.xml files and sitemap index files, whose child
    sitemaps are fetched in turn. Order of appearance is preserved.
    """

    # Guard against sitemap indexes that reference each other
    MAX_DEPTH = 3

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS):
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'Mozilla/5.0 (compatible; siteqa/1.0)',
            'Accept': 'application/xml, text/xml, */*',
        })
        self.timeout = timeout

    def parse(self, sitemap_url: str, max_urls: Optional[int] = None) -> List[str]:
        """
        Parse a sitemap and return its URLs.

        Args:
            sitemap_url: URL of the sitemap.xml or sitemap index
            max_urls: Maximum number of URLs to return (None for all)

        Returns:
            Ordered, de-duplicated URLs
        """
        urls: List[str] = []
        self._fetch(sitemap_url, urls, max_urls, depth=0)
        urls = _dedupe(urls)
        if max_urls:
            urls = urls[:max_urls]
        return urls

    def _fetch(self, sitemap_url: str, urls: List[str], max_urls: Optional[int], depth: int) -> None:
        if depth > self.MAX_DEPTH:
            return
        if max_urls and len(urls) >= max_urls:
            return

        logger.info(f"Fetching sitemap: {sitemap_url}")
        try:
            response = self.session.get(sitemap_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to fetch sitemap {sitemap_url}: {e}")
            return

        self._parse_content(response.text, urls, max_urls, depth)

    def _parse_content(self, content: str, urls: List[str], max_urls: Optional[int], depth: int) -> None:
        content = re.sub(r'<!DOCTYPE[^>]*>', '', content)
        try:
            root = ET.fromstring(content.encode("utf-8"))
        except ET.ParseError as e:
            logger.error(f"Failed to parse sitemap XML: {e}")
            return

        root_tag = root.tag.split('}')[-1]

        if root_tag == 'sitemapindex':
            for loc in self._locs(root, 'sitemap'):
                logger.info(f"Found child sitemap: {loc}")
                self._fetch(loc, urls, max_urls, depth + 1)
        elif root_tag == 'urlset':
            count = 0
            for loc in self._locs(root, 'url'):
                urls.append(loc)
                count += 1
                if max_urls and len(urls) >= max_urls:
                    logger.info(f"Reached max URLs limit ({max_urls})")
                    break
            logger.info(f"Extracted {count} URLs from sitemap")
        else:
            logger.warning(f"Unknown sitemap root element: {root_tag}")

    @staticmethod
    def _locs(root: ET.Element, entry_tag: str) -> List[str]:
        locs = []
        for entry in root:
            if entry.tag.split('}')[-1] != entry_tag:
                continue
            loc = entry.find(f'{SITEMAP_NS}loc')
            if loc is None:
                loc = entry.find('loc')
            if loc is not None and loc.text:
                locs.append(loc.text.strip())
        return locs


def load_corpus(config: QAConfig) -> List[str]:
    """
    Build the corpus from configuration.

    The corpus file wins over the sitemap when both are configured.

    Raises:
        CorpusError: If no source is configured or the source yields no URLs
    """
    if config.corpus_file:
        urls = load_corpus_file(config.corpus_file, config.base_url)
    elif config.sitemap_url:
        urls = SitemapParser().parse(config.sitemap_url)
    else:
        raise CorpusError(
            "No corpus source configured (set SITEQA_CORPUS_FILE or SITEQA_SITEMAP_URL)"
        )

    if not urls:
        raise CorpusError("Corpus is empty")
    return urls

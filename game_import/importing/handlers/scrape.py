"""
Page scraping: Firecrawl when a key is configured, otherwise a direct fetch.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ...config import FIRECRAWL_API_KEY, FIRECRAWL_ENDPOINT, HTTP_TIMEOUT, USER_AGENT
from ...error_handling import handle_errors
from ...models import Lookup, ScrapedPage

logger = logging.getLogger(__name__)


def build_session(methods=("HEAD", "GET", "OPTIONS")) -> requests.Session:
    """Session with the browser user agent and a basic retry policy on transient statuses."""
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    retries = Retry(
        total=3,
        backoff_factor=0.3,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=list(methods),
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def html_to_text(raw_html: str) -> str:
    soup = BeautifulSoup(raw_html or "", "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return soup.get_text("\n", strip=True)


@handle_errors(default_return={})
def read_page_metadata(raw_html: str) -> Dict[str, str]:
    """Title and image from ``og:`` meta tags, falling back to the <title> element."""
    soup = BeautifulSoup(raw_html or "", "html.parser")
    metadata: Dict[str, str] = {}
    for key in ("title", "image", "description"):
        tag = soup.find("meta", attrs={"property": f"og:{key}"}) or soup.find("meta", attrs={"name": f"og:{key}"})
        content = tag.get("content") if tag else None
        if content and content.strip():
            metadata[key] = content.strip()
    if "title" not in metadata and soup.title and soup.title.string:
        metadata["title"] = soup.title.string.strip()
    return metadata


class Scraper(ABC):
    """Retrieves a page as markdown text plus raw HTML."""

    @abstractmethod
    def scrape(self, url: str) -> Lookup[ScrapedPage]:
        pass


class FirecrawlScraper(Scraper):
    """Scrapes through the Firecrawl API, which renders pages blocked to plain HTTP clients."""

    def __init__(self, api_key: str, endpoint: str = FIRECRAWL_ENDPOINT,
                 session: Optional[requests.Session] = None, timeout: int = HTTP_TIMEOUT):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or build_session(methods=("POST",))

    def scrape(self, url: str) -> Lookup[ScrapedPage]:
        logger.info(f"Scraping {url} via Firecrawl")
        try:
            resp = self.session.post(
                self.endpoint,
                json={"url": url, "formats": ["markdown", "rawHtml"], "onlyMainContent": True},
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Firecrawl request failed for {url}: {e}")
            return Lookup.failed(f"Scrape failed: {e}")

        if not resp.ok:
            logger.warning(f"Firecrawl returned {resp.status_code} for {url}")
            return Lookup.failed(f"Scrape failed: {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError:
            return Lookup.failed("Scrape failed: invalid response")
        if not isinstance(payload, dict):
            return Lookup.failed("Scrape failed: invalid response")

        data = payload.get("data") or payload
        if not isinstance(data, dict):
            return Lookup.failed("Scrape failed: invalid response")
        markdown = data.get("markdown") or ""
        raw_html = data.get("rawHtml") or ""
        if not markdown and not raw_html:
            return Lookup.miss("Scrape returned no content")
        return Lookup.found(ScrapedPage(url=url, markdown=markdown, raw_html=raw_html))


class DirectScraper(Scraper):
    """Plain HTTP fetch; page text is derived from the HTML with BeautifulSoup."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = HTTP_TIMEOUT):
        self.timeout = timeout
        self.session = session or build_session()

    def scrape(self, url: str) -> Lookup[ScrapedPage]:
        logger.info(f"Fetching {url}")
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Fetch failed for {url}: {e}")
            return Lookup.failed(f"Scrape failed: {e}")

        if not resp.ok:
            logger.warning(f"Fetch returned {resp.status_code} for {url}")
            return Lookup.failed(f"Scrape failed: {resp.status_code}")

        raw_html = resp.text or ""
        markdown = html_to_text(raw_html)
        if not markdown and not raw_html:
            return Lookup.miss("Page was empty")
        return Lookup.found(ScrapedPage(url=url, markdown=markdown, raw_html=raw_html))


def create_scraper() -> Scraper:
    if FIRECRAWL_API_KEY:
        return FirecrawlScraper(FIRECRAWL_API_KEY)
    logger.info("FIRECRAWL_API_KEY not set; fetching pages directly")
    return DirectScraper()

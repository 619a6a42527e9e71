"""
Web-search fallback for resolving a title to a BGG id when the BGG search misses.
"""

import logging
from typing import Any, Dict, Optional

from tavily import TavilyClient

from ...config import TAVILY_API_KEY
from ...models import Lookup
from .bgg import extract_link_id

logger = logging.getLogger(__name__)


class TavilyGameSearch:
    """Searches boardgamegeek.com through Tavily and reads the id off the first game link."""

    def __init__(self, api_key: Optional[str] = None, client: Any = None, max_results: int = 5):
        self.api_key = api_key or TAVILY_API_KEY
        if client is None:
            if not self.api_key:
                raise RuntimeError("TAVILY_API_KEY is not set")
            client = TavilyClient(api_key=self.api_key)
        self.client = client
        self.max_results = max_results

    def find_id(self, title: str) -> Lookup[str]:
        query = f'"{title}" board game'
        try:
            resp: Dict = self.client.search(
                query,
                max_results=self.max_results,
                include_answer=False,
                include_domains=["boardgamegeek.com"],
            )
        except Exception as e:
            logger.warning(f"Tavily search failed for '{title}': {e}")
            return Lookup.failed(f"Web search failed: {e}")

        for item in resp.get("results", [])[: self.max_results]:
            bgg_id = extract_link_id(item.get("url") or "")
            if bgg_id:
                logger.info(f"Tavily resolved '{title}' to BGG id {bgg_id}")
                return Lookup.found(bgg_id)
        return Lookup.miss(f"Web search found no BGG page for '{title}'")


def create_web_search() -> Optional[TavilyGameSearch]:
    if not TAVILY_API_KEY:
        return None
    return TavilyGameSearch(TAVILY_API_KEY)

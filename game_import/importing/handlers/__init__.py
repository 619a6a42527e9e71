"""
Handlers for the external collaborators of an import.

This module contains specialized handlers for:
- AI structured extraction
- Page scraping
- BoardGameGeek XML API
- Web search fallback
"""

from .llm import (
    StructuredExtractor,
    OpenAICompatibleExtractor,
    TogetherExtractor,
    NullExtractor,
    GameExtraction,
    create_extractor,
)
from .scrape import Scraper, FirecrawlScraper, DirectScraper, create_scraper
from .bgg import BGGClient, BGGThing, extract_link_id, parse_bgg_id
from .search import TavilyGameSearch, create_web_search

__all__ = [
    "StructuredExtractor",
    "OpenAICompatibleExtractor",
    "TogetherExtractor",
    "NullExtractor",
    "GameExtraction",
    "create_extractor",
    "Scraper",
    "FirecrawlScraper",
    "DirectScraper",
    "create_scraper",
    "BGGClient",
    "BGGThing",
    "extract_link_id",
    "parse_bgg_id",
    "TavilyGameSearch",
    "create_web_search",
]

"""
External fetchers: turn a BGG id, a title or an arbitrary URL into a
candidate game built from the scraped page and AI extraction.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from ..config import (
    AI_PAGE_TEXT_LIMIT,
    AI_URL_PAGE_TEXT_LIMIT,
    EXTRACT_GAME_TOOL,
    EXTRACT_GAME_WITH_TITLE_TOOL,
    EXTRACTION_PROMPT,
    URL_EXTRACTION_PROMPT,
)
from ..models import CandidateGame, Lookup, ScrapedPage
from .handlers.bgg import BGGClient, bgg_page_url, clean_page_title, extract_link_id
from .handlers.llm import StructuredExtractor
from .handlers.scrape import Scraper, html_to_text, read_page_metadata
from .handlers.search import TavilyGameSearch
from .images import filter_image_url, pick_best_image, pick_gameplay_images
from .normalize import map_minutes_to_play_time

logger = logging.getLogger(__name__)


def _page_text(page: ScrapedPage, limit: int) -> str:
    text = page.markdown or html_to_text(page.raw_html)
    return text[:limit]


def is_bgg_url(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return host == "boardgamegeek.com" or host.endswith(".boardgamegeek.com")


class GameFetcher:
    """
    Builds candidate games from external sources.

    Every fetch tolerates a missing or failing extractor: the result then
    carries only what the scrape itself yielded. An AI failure is reported in
    ``Lookup.reason`` on a found result, and ``rate_limited`` is passed through.
    """

    def __init__(self, scraper: Scraper, extractor: StructuredExtractor, bgg: BGGClient,
                 web_search: Optional[TavilyGameSearch] = None,
                 page_limit: int = AI_PAGE_TEXT_LIMIT, url_page_limit: int = AI_URL_PAGE_TEXT_LIMIT):
        self.scraper = scraper
        self.extractor = extractor
        self.bgg = bgg
        self.web_search = web_search
        self.page_limit = page_limit
        self.url_page_limit = url_page_limit

    def _ai_reason(self, reason: Optional[str]) -> Optional[str]:
        # An unconfigured provider is an expected degraded path, not something to report
        return reason if self.extractor.configured else None

    def fetch_by_id(self, bgg_id: str, use_ai: bool = True) -> Lookup[CandidateGame]:
        """
        Scrape the BGG page for ``bgg_id`` and extract the remaining fields.

        With ``use_ai`` off only the title and images are read, from the page
        or the thing endpoint. Always returns a found result holding at least
        the id and page URL.
        """
        url = bgg_page_url(bgg_id)
        record = CandidateGame(bgg_id=bgg_id, bgg_url=url)

        page = self.scraper.scrape(url)
        if page.is_found and bgg_id not in page.value.markdown and bgg_id not in page.value.raw_html:
            # BGG serves a generic page when it blocks a scraper
            logger.warning(f"Scraped page for BGG id {bgg_id} does not mention the game; ignoring it")
            page = Lookup.failed("Scraped page is unrelated to the game")

        if not page.is_found:
            logger.warning(f"Could not scrape BGG page for {bgg_id}: {page.reason}")
            return Lookup.found(self._from_thing(record))

        scraped = page.value
        record.title = clean_page_title(read_page_metadata(scraped.raw_html).get("title")) or ""
        record.image_url = filter_image_url(pick_best_image(scraped.raw_html)) or None
        record.additional_images = pick_gameplay_images([], scraped.raw_html, record.image_url)
        if not use_ai:
            return Lookup.found(record if record.title else self._from_thing(record))

        extraction = self.extractor.extract_game(
            EXTRACTION_PROMPT,
            f"Extract game data from: {_page_text(scraped, self.page_limit)}",
            EXTRACT_GAME_TOOL,
        )
        if not extraction.is_found:
            logger.info(f"AI extraction for BGG id {bgg_id} failed: {extraction.reason}")
            return Lookup.found(record, reason=self._ai_reason(extraction.reason),
                                rate_limited=extraction.rate_limited)

        fields = extraction.value.to_candidate()
        # The page title beats whatever the model read
        fields.title = ""
        return Lookup.found(self._with_gameplay_images(record, fields, scraped.raw_html))

    def _with_gameplay_images(self, record: CandidateGame, fields: CandidateGame, raw_html: str) -> CandidateGame:
        """Merge extracted fields, preferring the model's gameplay photos over the page gallery."""
        suggested = fields.additional_images
        fields.additional_images = []
        merged = record.merge_missing(fields)
        if suggested:
            merged.additional_images = pick_gameplay_images(suggested, raw_html, merged.image_url)
        return merged

    def _from_thing(self, record: CandidateGame) -> CandidateGame:
        """Fill title, image and basic counts from the BGG thing endpoint."""
        thing = self.bgg.get_thing(record.bgg_id)
        if not thing.is_found:
            logger.info(f"No BGG metadata for {record.bgg_id}: {thing.reason}")
            return record
        data = thing.value
        play_time = map_minutes_to_play_time(data.playing_time_minutes) if data.playing_time_minutes else None
        return record.merge_missing(CandidateGame(
            title=data.title or "",
            image_url=data.image_url,
            min_players=data.min_players,
            max_players=data.max_players,
            suggested_age=data.suggested_age,
            play_time=play_time,
        ))

    def resolve_title(self, title: str) -> Lookup[str]:
        """Title to BGG id: exact BGG search, fuzzy BGG search, then web search."""
        found = self.bgg.find_id(title)
        if found.is_found:
            return found
        if self.web_search is not None:
            logger.info(f"BGG search missed '{title}', trying web search")
            found = self.web_search.find_id(title)
            if found.is_found:
                return found
        return Lookup.miss(f"No BGG match for \"{title}\"")

    def fetch_by_title(self, title: str) -> Lookup[CandidateGame]:
        resolved = self.resolve_title(title)
        if not resolved.is_found:
            return Lookup.miss(resolved.reason or "no match")
        return self.fetch_by_id(resolved.value)

    def fetch_by_url(self, url: str) -> Lookup[CandidateGame]:
        """
        Fetch a game from any page. BGG game links go through ``fetch_by_id``;
        other pages are scraped and the model also supplies the title.
        """
        bgg_id = extract_link_id(url) if is_bgg_url(url) else None
        if bgg_id:
            return self.fetch_by_id(bgg_id)

        page = self.scraper.scrape(url)
        if not page.is_found:
            return Lookup.failed(f"Could not read {url}: {page.reason}")

        scraped = page.value
        meta = read_page_metadata(scraped.raw_html)
        record = CandidateGame(
            title=clean_page_title(meta.get("title")) or "",
            image_url=filter_image_url(pick_best_image(scraped.raw_html) or meta.get("image")) or None,
        )
        record.additional_images = pick_gameplay_images([], scraped.raw_html, record.image_url)

        extraction = self.extractor.extract_game(
            URL_EXTRACTION_PROMPT,
            f"Extract game data from this page ({url}):\n\n{_page_text(scraped, self.url_page_limit)}",
            EXTRACT_GAME_WITH_TITLE_TOOL,
        )
        if not extraction.is_found:
            if not record.title:
                return Lookup.failed(extraction.reason or "Could not extract game data",
                                     rate_limited=extraction.rate_limited)
            return Lookup.found(record, reason=self._ai_reason(extraction.reason),
                                rate_limited=extraction.rate_limited)

        fields = extraction.value.to_candidate()
        # The model reads the game title better than an arbitrary page's <title>
        if fields.title:
            record.title = fields.title
        return Lookup.found(self._with_gameplay_images(record, fields, scraped.raw_html))

"""
BoardGameGeek XML API client: title search, owned-collection listing and
single-game ("thing") lookups with a page-scrape fallback.
"""

import logging
import re
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from ...config import (
    BGG_API_TOKEN,
    BGG_PAGE_URL_TEMPLATE,
    BGG_XMLAPI_URLS,
    COLLECTION_MAX_ATTEMPTS,
    COLLECTION_RETRY_DELAY,
    HTTP_TIMEOUT,
)
from ...error_handling import CollectionError, CollectionTimeoutError
from ...models import Lookup
from ..images import filter_image_url, pick_best_image
from ..normalize import parse_int
from .scrape import Scraper, build_session, read_page_metadata

logger = logging.getLogger(__name__)

BLOCKED_STATUSES = (401, 403, 429)
STILL_GENERATING_STATUS = 202

_LINK_ID = re.compile(r"boardgame(?:expansion)?/(\d+)", re.IGNORECASE)
_LOOSE_ID = re.compile(r"(?:boardgame(?:expansion)?/(\d+))|(\d+)", re.IGNORECASE)
_TITLE_SUFFIX = re.compile(r"\s*\|\s*(?:Board Game|BoardGameGeek).*$", re.IGNORECASE)

_PLAYER_PATTERNS = [
    re.compile(r"(\d+)\s*[-–—]\s*(\d+)\s*Players?", re.IGNORECASE),
    re.compile(r"\"minplayers\"[:\s]*(\d+)[^}]*\"maxplayers\"[:\s]*(\d+)", re.IGNORECASE | re.DOTALL),
    re.compile(r"Players?[:\s]*(\d+)\s*[-–—]\s*(\d+)", re.IGNORECASE),
    re.compile(r"(\d+)\s*to\s*(\d+)\s*Players?", re.IGNORECASE),
]
_TIME_PATTERNS = [
    re.compile(r"(\d+)\s*[-–—]\s*(\d+)\s*Min(?:utes?)?", re.IGNORECASE),
    re.compile(r"\"playingtime\"[:\s]*(\d+)", re.IGNORECASE),
    re.compile(r"Playing\s*Time[:\s]*(\d+)\s*[-–—]?\s*(\d+)?\s*Min", re.IGNORECASE),
]
_AGE_PATTERNS = [
    re.compile(r"(?:Age|Min(?:imum)?\s*Age)[:\s]*(\d+)\+?", re.IGNORECASE),
    re.compile(r"\"minage\"[:\s]*(\d+)", re.IGNORECASE),
    re.compile(r"(\d+)\s*(?:and up|years?\s*(?:and\s*)?(?:up|older|\+))", re.IGNORECASE),
]


def extract_link_id(link: str) -> Optional[str]:
    """BGG id from a ``/boardgame/<id>`` or ``/boardgameexpansion/<id>`` link."""
    match = _LINK_ID.search(link or "")
    return match.group(1) if match else None


def parse_bgg_id(url_or_id: str) -> Optional[str]:
    """BGG id from a game link, or the first run of digits in a bare id."""
    match = _LOOSE_ID.search(str(url_or_id or ""))
    if not match:
        return None
    return match.group(1) or match.group(2)


def bgg_page_url(bgg_id: str) -> str:
    return BGG_PAGE_URL_TEMPLATE.format(bgg_id=bgg_id)


def clean_page_title(title: Optional[str]) -> Optional[str]:
    """Drop the " | Board Game | BoardGameGeek" suffix BGG appends to page titles."""
    if not title:
        return None
    return _TITLE_SUFFIX.sub("", title).strip() or None


@dataclass
class BGGThing:
    """Basic metadata for one BGG game."""
    bgg_id: str
    title: Optional[str] = None
    image_url: Optional[str] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    suggested_age: Optional[str] = None
    playing_time_minutes: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _value_attr(item: ET.Element, tag: str) -> Optional[str]:
    node = item.find(tag)
    return node.get("value") if node is not None else None


def parse_thing_xml(bgg_id: str, content: bytes) -> Optional[BGGThing]:
    root = ET.fromstring(content)
    item = root.find(".//item")
    if item is None:
        return None

    name = item.find('name[@type="primary"]')
    image = item.find("image")
    min_age = parse_int(_value_attr(item, "minage"))

    return BGGThing(
        bgg_id=bgg_id,
        title=name.get("value") if name is not None else None,
        image_url=filter_image_url(image.text.strip() if image is not None and image.text else None) or None,
        min_players=parse_int(_value_attr(item, "minplayers")),
        max_players=parse_int(_value_attr(item, "maxplayers")),
        suggested_age=f"{min_age}+" if min_age and min_age > 0 else None,
        playing_time_minutes=parse_int(_value_attr(item, "playingtime")),
    )


def _first_matches(patterns: Sequence[re.Pattern], text: str):
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            yield match


def parse_thing_html(bgg_id: str, raw_html: str) -> BGGThing:
    """Best-effort metadata from a BGG game page, for when the XML API is blocked."""
    meta = read_page_metadata(raw_html)
    thing = BGGThing(bgg_id=bgg_id)

    thing.title = clean_page_title(meta.get("title"))
    thing.image_url = filter_image_url(pick_best_image(raw_html) or meta.get("image")) or None

    for match in _first_matches(_PLAYER_PATTERNS, raw_html):
        low, high = int(match.group(1)), int(match.group(2))
        if 0 < low <= high:
            thing.min_players, thing.max_players = low, high
            break

    for match in _first_matches(_TIME_PATTERNS, raw_html):
        first = int(match.group(1))
        second = match.group(2) if match.lastindex and match.lastindex >= 2 else None
        if first > 0:
            thing.playing_time_minutes = round((first + int(second)) / 2) if second else first
            break

    for match in _first_matches(_AGE_PATTERNS, raw_html):
        age = int(match.group(1))
        if 0 < age < 100:
            thing.suggested_age = f"{age}+"
            break

    return thing


class BGGClient:
    """
    Thin client over the BGG XML API v2.

    Requests go to each configured API host in turn while the response says
    the caller is blocked (401/403/429).
    """

    def __init__(self, session: Optional[requests.Session] = None, scraper: Optional[Scraper] = None,
                 api_urls: Sequence[str] = BGG_XMLAPI_URLS, token: Optional[str] = BGG_API_TOKEN,
                 timeout: int = HTTP_TIMEOUT, sleep: Callable[[float], None] = time.sleep,
                 max_attempts: int = COLLECTION_MAX_ATTEMPTS, retry_delay: float = COLLECTION_RETRY_DELAY):
        self.session = session or build_session()
        self.scraper = scraper
        self.api_urls = list(api_urls)
        self.timeout = timeout
        self.sleep = sleep
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.session.headers.update({"Accept": "application/xml,text/xml;q=0.9,*/*;q=0.8"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        """GET ``path`` on the first API host that does not block us. Returns the last response."""
        response = None
        for base_url in self.api_urls:
            response = self.session.get(f"{base_url}/{path}", params=params, timeout=self.timeout)
            if response.status_code not in BLOCKED_STATUSES:
                return response
            logger.warning(f"BGG API {base_url} answered {response.status_code}, trying next host")
        return response

    def search(self, title: str, exact: bool = True) -> Lookup[str]:
        """Resolve a title to the first matching BGG id."""
        params = {"query": title, "type": "boardgame"}
        if exact:
            params["exact"] = 1
        try:
            resp = self._get("search", params)
            if not resp.ok:
                return Lookup.failed(f"BGG search failed: {resp.status_code}")
            root = ET.fromstring(resp.content)
        except (requests.RequestException, ET.ParseError) as e:
            logger.warning(f"BGG search for '{title}' failed: {e}")
            return Lookup.failed(f"BGG search failed: {e}")

        item = root.find("item")
        if item is None or not item.get("id"):
            return Lookup.miss(f"No BGG {'exact ' if exact else ''}match for '{title}'")
        return Lookup.found(item.get("id"))

    def find_id(self, title: str) -> Lookup[str]:
        """Exact search first, then fuzzy."""
        exact = self.search(title, exact=True)
        if exact.is_found:
            return exact
        logger.info(f"No exact BGG match for '{title}', trying fuzzy search")
        return self.search(title, exact=False)

    def list_owned(self, username: str) -> List[Dict[str, str]]:
        """
        List the base games a BGG user owns.

        BGG answers 202 while it builds the listing; poll with a fixed delay
        up to the attempt cap.

        Raises:
            CollectionError: BGG answered with a failure status
            CollectionTimeoutError: the listing was still being generated after the last attempt
        """
        params = {"username": username, "own": 1, "excludesubtype": "boardgameexpansion"}
        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = self._get("collection", params)
            except requests.RequestException as e:
                raise CollectionError(f"Failed to fetch collection: {e}")

            if resp.status_code == STILL_GENERATING_STATUS:
                logger.info(f"BGG is still generating the collection for {username} (attempt {attempt}/{self.max_attempts})")
                self.sleep(self.retry_delay)
                continue
            if not resp.ok:
                raise CollectionError(f"Failed to fetch collection: {resp.status_code}")

            try:
                root = ET.fromstring(resp.content)
            except ET.ParseError as e:
                raise CollectionError(f"Failed to parse collection: {e}")

            games = []
            for item in root.findall("item"):
                object_id = item.get("objectid")
                name = item.findtext("name")
                if object_id and name:
                    games.append({"id": object_id, "name": name.strip()})
            logger.info(f"Fetched {len(games)} owned games for {username}")
            return games

        raise CollectionTimeoutError("BGG collection request timed out")

    def get_thing(self, bgg_id: str) -> Lookup[BGGThing]:
        """Basic metadata from the XML ``thing`` endpoint, or from the page when the API blocks us."""
        try:
            resp = self._get("thing", {"id": bgg_id, "stats": 1})
        except requests.RequestException as e:
            logger.warning(f"BGG thing lookup for {bgg_id} failed: {e}")
            return Lookup.failed(f"BGG request failed: {e}")

        if resp.ok:
            try:
                thing = parse_thing_xml(bgg_id, resp.content)
            except ET.ParseError as e:
                return Lookup.failed(f"BGG response could not be parsed: {e}")
            if thing is None:
                return Lookup.miss(f"BGG has no game with id {bgg_id}")
            return Lookup.found(thing)

        if resp.status_code in BLOCKED_STATUSES and self.scraper is not None:
            logger.info(f"BGG API blocked ({resp.status_code}), reading game page for {bgg_id}")
            page = self.scraper.scrape(bgg_page_url(bgg_id))
            if page.is_found and page.value.raw_html:
                return Lookup.found(parse_thing_html(bgg_id, page.value.raw_html))

        return Lookup.failed(f"BGG request failed ({resp.status_code})")

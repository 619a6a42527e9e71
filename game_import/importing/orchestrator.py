"""
Import orchestrator using LangGraph to run each candidate game through
enhancement, validation and insertion.

The order of steps per game is explicit in the graph: enhance, check,
insert. Games are processed one at a time.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import replace
from typing import Callable, List, Optional, Tuple, TypedDict
from urllib.parse import urlparse

from langgraph.graph import StateGraph, END

from ..auth import TokenAuthorizer
from ..config import DATABASE_PATH, ENHANCE_DELAY_SECONDS
from ..database import GameStore
from ..error_handling import InvalidRequestError
from ..models import CandidateGame, ImportResult, Lookup
from .enhancement import EnhancementGate
from .fetcher import GameFetcher, is_bgg_url
from .formats import parse_csv_games
from .handlers import (
    BGGClient,
    BGGThing,
    create_extractor,
    create_scraper,
    create_web_search,
    extract_link_id,
    parse_bgg_id,
)
from .handlers.bgg import bgg_page_url
from .normalize import build_game_row, clean_title, title_from_slug
from .resolver import EntityResolver
from .schemas import ImportRequest

logger = logging.getLogger(__name__)


class ImportState(TypedDict, total=False):
    game: CandidateGame
    can_enhance: bool
    fetch_basics: bool
    enhanced: bool
    rate_limited: bool
    rate_limit_reason: Optional[str]
    notes: List[str]
    failure: Optional[str]
    game_id: Optional[str]


class ImportOrchestrator:
    """Runs import requests against the store, driven by LangGraph."""

    def __init__(self, store: GameStore, authorizer: TokenAuthorizer, fetcher: GameFetcher, bgg: BGGClient,
                 delay: Callable[[float], None] = time.sleep, enhance_delay: float = ENHANCE_DELAY_SECONDS):
        self.store = store
        self.authorizer = authorizer
        self.fetcher = fetcher
        self.bgg = bgg
        self.resolver = EntityResolver(store)
        self.delay = delay
        self.enhance_delay = enhance_delay
        self.graph = self._build_graph()

    def _build_graph(self):
        graph = StateGraph(ImportState)

        def enhance(state: ImportState) -> ImportState:
            game = state["game"]
            if not state.get("can_enhance"):
                if state.get("fetch_basics") and game.bgg_id and not game.title:
                    logger.info(f"Fetching title without AI for BGG ID: {game.bgg_id}")
                    basics = self.fetcher.fetch_by_id(game.bgg_id, use_ai=False)
                    if basics.is_found:
                        game = game.merge_missing(basics.value)
                    return {"game": game, "enhanced": False}
                return {"enhanced": False}

            if game.bgg_id:
                logger.info(f"Enhancing with BGG data: {game.bgg_id}")
                lookup = self.fetcher.fetch_by_id(game.bgg_id)
            elif game.title:
                logger.info(f"Looking up BGG by title: {game.title}")
                lookup = self.fetcher.fetch_by_title(game.title)
            elif game.source_url:
                logger.info(f"Fetching game from URL: {game.source_url}")
                lookup = self.fetcher.fetch_by_url(game.source_url)
            else:
                return {"enhanced": False}

            if lookup.is_found:
                game = game.merge_missing(lookup.value)

            notes = list(state.get("notes", []))
            if lookup.rate_limited:
                notes.append(f"AI rate limit reached while enhancing \"{game.label}\"; "
                             "remaining games are imported without enhancement")
            elif lookup.is_miss:
                logger.info(f"No BGG data for \"{game.label}\": {lookup.reason}")
            elif lookup.reason:
                notes.append(f"Enhancement failed for \"{game.label}\": {lookup.reason}")
            return {
                "game": game,
                "enhanced": True,
                "rate_limited": lookup.rate_limited,
                "rate_limit_reason": lookup.reason if lookup.rate_limited else None,
                "notes": notes,
            }

        def check(state: ImportState) -> ImportState:
            game = state["game"]
            if not game.title:
                fallback = title_from_slug(game.bgg_url or game.source_url)
                if fallback:
                    logger.info(f"Using title from URL slug: {fallback}")
                    game = game.merge_missing(CandidateGame(title=fallback))
            if not game.title:
                if game.bgg_id:
                    return {"failure": f"Could not determine title for BGG ID: {game.bgg_id}"}
                return {"failure": f"Could not determine title for {game.label}"}

            title = clean_title(game.title)
            if self.store.find_game_by_title(title):
                return {"failure": f"\"{title}\" already exists"}
            return {"game": replace(game, title=title), "failure": None}

        def insert(state: ImportState) -> ImportState:
            game = state["game"]
            notes = list(state.get("notes", []))

            mechanic_ids = self.resolver.resolve_mechanics(game.mechanics)
            publisher_id = self.resolver.resolve_optional_publisher(game.publisher)
            parent_game_id = None
            if game.is_expansion and game.parent_game:
                parent_game_id = self.resolver.resolve_parent(game.parent_game)
                if not parent_game_id:
                    notes.append(f"Parent game \"{game.parent_game}\" not found for \"{game.title}\"; "
                                 "imported without a parent link")

            row = build_game_row(game, publisher_id=publisher_id, parent_game_id=parent_game_id)
            try:
                game_id = self.store.insert_game(row)
            except sqlite3.Error as e:
                return {"failure": f"Failed to create \"{row['title']}\": {e}", "notes": notes}

            # The game row is committed, so later problems are notes rather than failures
            try:
                self.store.link_mechanics(game_id, mechanic_ids)
            except sqlite3.Error as e:
                notes.append(f"Imported \"{row['title']}\" without its mechanics: {e}")
            if game.purchase_price is not None or game.purchase_date:
                try:
                    self.store.insert_admin_data(game_id, game.purchase_price, game.purchase_date)
                except sqlite3.Error as e:
                    notes.append(f"Imported \"{row['title']}\" without its purchase details: {e}")
            return {"game_id": game_id, "notes": notes}

        def after_check(state: ImportState) -> str:
            return END if state.get("failure") else "insert"

        graph.add_node("enhance", enhance)
        graph.add_node("check", check)
        graph.add_node("insert", insert)

        graph.add_edge("enhance", "check")
        graph.add_conditional_edges("check", after_check, {END: END, "insert": "insert"})
        graph.add_edge("insert", END)

        graph.set_entry_point("enhance")
        return graph.compile()

    def _acquire_seeds(self, request: ImportRequest) -> Tuple[List[CandidateGame], List[str]]:
        """Turn the request input into candidate games plus any per-link failures."""
        if request.mode == "csv":
            if not request.csv_data or not request.csv_data.strip():
                raise InvalidRequestError("CSV data is required")
            return parse_csv_games(request.csv_data), []

        if request.mode == "bgg_collection":
            username = (request.bgg_username or "").strip()
            if not username:
                raise InvalidRequestError("BGG username is required")
            logger.info(f"Fetching BGG collection for: {username}")
            owned = self.bgg.list_owned(username)
            return [
                CandidateGame(title=item["name"], bgg_id=item["id"], bgg_url=bgg_page_url(item["id"]))
                for item in owned
            ], []

        if request.mode == "bgg_links":
            links = [link.strip() for link in request.bgg_links or [] if link and link.strip()]
            if not links:
                raise InvalidRequestError("At least one BGG link is required")
            seeds, failures = [], []
            for link in links:
                bgg_id = extract_link_id(link)
                if bgg_id:
                    seeds.append(CandidateGame(bgg_id=bgg_id, bgg_url=link))
                else:
                    failures.append(f"Invalid BGG link: {link}")
            return seeds, failures

        url = (request.url or "").strip()
        if not url:
            raise InvalidRequestError("URL is required")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidRequestError("URL must start with http:// or https://")
        bgg_id = extract_link_id(url) if is_bgg_url(url) else None
        return [CandidateGame(
            bgg_id=bgg_id,
            bgg_url=url if bgg_id else None,
            source_url=None if bgg_id else url,
            is_expansion=request.is_expansion,
            parent_game=request.parent_game,
            in_base_game_box=request.in_base_game_box,
        )], []

    def authorize(self, authorization: Optional[str]) -> str:
        return self.authorizer.authorize(authorization)

    def run(self, request: ImportRequest, authorization: Optional[str]) -> ImportResult:
        """
        Authorize the caller, then run one import request.

        Raises:
            AuthenticationError, AuthorizationError: the caller is not an administrator
            InvalidRequestError: required input for the mode is missing
            CollectionError: the BGG collection could not be fetched
        """
        return self.execute(request, self.authorize(authorization))

    def execute(self, request: ImportRequest, user_id: str) -> ImportResult:
        """Run an import for a caller that has already been authorized."""
        logger.info(f"Import ({request.mode}) started by {user_id}")

        seeds, link_failures = self._acquire_seeds(request)
        result = ImportResult()
        for failure in link_failures:
            result.record_failure(failure)

        # A single URL carries no data of its own, so it is always enhanced
        gate = EnhancementGate.for_request(request.enhance_with_bgg or request.mode == "single_url")
        defaults = request.default_options.to_options()

        total = len(seeds)
        logger.info(f"Processing {total} games...")
        for i, seed in enumerate(seeds):
            seed = seed.with_defaults(defaults)
            label = seed.label
            logger.info(f"Processing game {i + 1}/{total}: {label}")
            gate.next_item(label)

            state: ImportState = {
                "game": seed,
                "can_enhance": gate.can_enhance,
                "fetch_basics": gate.rate_limited,
                "notes": [],
                "failure": None,
            }
            try:
                final: ImportState = self.graph.invoke(state)
            except Exception as e:
                logger.error(f"Error importing {label}: {e}")
                result.record_failure(f"Error importing \"{label}\": {e}")
                continue

            if final.get("rate_limited"):
                gate.record_rate_limit(final["game"].label, final.get("rate_limit_reason"))
            for note in final.get("notes", []):
                result.add_note(note)
            if final.get("failure"):
                logger.error(final["failure"])
                result.record_failure(final["failure"])
            else:
                title = final["game"].title
                logger.info(f"Imported \"{title}\"")
                result.record_success(title, final["game_id"])

            if final.get("enhanced") and i < total - 1 and self.enhance_delay > 0:
                self.delay(self.enhance_delay)

        result.rate_limited = gate.rate_limited
        logger.info(f"Import finished: {result.imported} imported, {result.failed} failed")
        return result

    def lookup(self, url_or_id: str) -> Lookup[BGGThing]:
        """Basic BGG metadata for a game link or id."""
        bgg_id = parse_bgg_id(url_or_id)
        if not bgg_id:
            raise InvalidRequestError("Could not determine BGG id")
        return self.bgg.get_thing(bgg_id)


def create_orchestrator(db_path=DATABASE_PATH) -> ImportOrchestrator:
    """Wire the orchestrator to the configured store and external services."""
    store = GameStore(db_path)
    scraper = create_scraper()
    bgg = BGGClient(scraper=scraper)
    fetcher = GameFetcher(scraper, create_extractor(), bgg, web_search=create_web_search())
    return ImportOrchestrator(store, TokenAuthorizer(store), fetcher, bgg)

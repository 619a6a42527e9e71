"""
CSV format detection and row transformers.

Two row shapes are supported: a BoardGameGeek collection export and a
generic user spreadsheet. The shape is detected once from the header set,
then every row goes through the matching transformer.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..config import BGG_PAGE_URL_TEMPLATE
from ..models import CandidateGame
from .csv_parser import parse_csv
from .normalize import (
    clean_text,
    map_complexity_to_difficulty,
    map_minutes_to_play_time,
    parse_bool,
    parse_float,
    parse_int,
    split_names,
)

logger = logging.getLogger(__name__)


class CsvFormat(str, Enum):
    GENERIC = "generic"
    BGG_EXPORT = "bgg_export"


def detect_format(headers: Sequence[str]) -> CsvFormat:
    """A BGG collection export always carries objectname and objectid columns."""
    lowered = {header.lower() for header in headers}
    if "objectname" in lowered and "objectid" in lowered:
        return CsvFormat.BGG_EXPORT
    return CsvFormat.GENERIC


def _pick(row: Mapping[str, str], *aliases: str) -> Optional[str]:
    """First non-blank value among the header aliases."""
    for alias in aliases:
        value = clean_text(row.get(alias))
        if value:
            return value
    return None


def transform_generic_row(row: Mapping[str, str]) -> Optional[CandidateGame]:
    """Map a spreadsheet row with tolerant header aliases onto a candidate game."""
    return CandidateGame(
        title=_pick(row, "title", "name", "game", "game name", "game title") or "",
        bgg_id=_pick(row, "bgg_id", "bgg id"),
        bgg_url=_pick(row, "bgg_url", "bgg url", "url"),
        description=_pick(row, "description"),
        image_url=_pick(row, "image_url", "image url", "image"),
        game_type=_pick(row, "type", "game_type", "game type"),
        difficulty=_pick(row, "difficulty", "weight"),
        play_time=_pick(row, "play_time", "play time", "playtime"),
        min_players=parse_int(_pick(row, "min_players", "min players")),
        max_players=parse_int(_pick(row, "max_players", "max players")),
        suggested_age=_pick(row, "suggested_age", "suggested age", "age"),
        publisher=_pick(row, "publisher"),
        mechanics=split_names(_pick(row, "mechanics", "mechanic")),
        is_expansion=parse_bool(_pick(row, "is_expansion", "is expansion")),
        parent_game=_pick(row, "parent_game", "parent game"),
        in_base_game_box=parse_bool(_pick(row, "in_base_game_box", "in base game box")),
        is_coming_soon=parse_bool(_pick(row, "is_coming_soon", "is coming soon")),
        is_for_sale=parse_bool(_pick(row, "is_for_sale", "is for sale")),
        sale_price=parse_float(_pick(row, "sale_price", "sale price")),
        sale_condition=_pick(row, "sale_condition", "sale condition"),
        location_room=_pick(row, "location_room", "location room"),
        location_shelf=_pick(row, "location_shelf", "location shelf"),
        location_misc=_pick(row, "location_misc", "location misc"),
        sleeved=parse_bool(_pick(row, "sleeved")),
        upgraded_components=parse_bool(_pick(row, "upgraded_components", "upgraded components")),
        crowdfunded=parse_bool(_pick(row, "crowdfunded")),
        inserts=parse_bool(_pick(row, "inserts")),
        purchase_price=parse_float(_pick(row, "purchase_price", "purchase price")),
        purchase_date=_pick(row, "purchase_date", "purchase date"),
    )


def transform_export_row(row: Mapping[str, str]) -> Optional[CandidateGame]:
    """
    Map a BGG collection export row onto a candidate game.

    Rows the user does not own are dropped (None), they are not failures.
    """
    if clean_text(row.get("own")) != "1":
        return None

    bgg_id = _pick(row, "objectid")
    minutes = parse_int(row.get("playingtime"))
    if not minutes or minutes <= 0:
        minutes = parse_int(row.get("maxplaytime"))
    return CandidateGame(
        title=_pick(row, "objectname") or "",
        bgg_id=bgg_id,
        bgg_url=BGG_PAGE_URL_TEMPLATE.format(bgg_id=bgg_id) if bgg_id else None,
        min_players=parse_int(_pick(row, "minplayers")),
        max_players=parse_int(_pick(row, "maxplayers")),
        play_time=map_minutes_to_play_time(minutes),
        difficulty=map_complexity_to_difficulty(_pick(row, "avgweight")),
        suggested_age=_pick(row, "bggrecagerange"),
        is_expansion=clean_text(row.get("itemtype")) == "expansion",
        is_for_sale=clean_text(row.get("fortrade")) == "1",
        location_misc=_pick(row, "invlocation"),
        # The user's own note is the only description an export carries
        description=_pick(row, "comment", "wishlistcomment"),
        purchase_price=parse_float(_pick(row, "pricepaid")),
        purchase_date=_pick(row, "acquisitiondate"),
    )


TRANSFORMERS: Dict[CsvFormat, Callable[[Mapping[str, str]], Optional[CandidateGame]]] = {
    CsvFormat.GENERIC: transform_generic_row,
    CsvFormat.BGG_EXPORT: transform_export_row,
}


def transform_rows(headers: Sequence[str], rows: List[Mapping[str, str]]) -> List[CandidateGame]:
    """Detect the row shape once and run every row through its transformer."""
    csv_format = detect_format(headers)
    transformer = TRANSFORMERS[csv_format]
    games = [game for game in (transformer(row) for row in rows) if game is not None]
    logger.info(f"Detected {csv_format.value} CSV format: {len(games)} of {len(rows)} rows selected")
    return games


def parse_csv_games(text: str) -> List[CandidateGame]:
    """Parse CSV text straight into candidate games."""
    headers, rows = parse_csv(text)
    if not rows:
        return []
    return transform_rows(headers, rows)

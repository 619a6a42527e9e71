"""
Value normalization: enum mappers, tolerant field parsing and the final
row shape written to the store.
"""

import math
import re
import unicodedata
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import (
    DIFFICULTY_LEVELS,
    PLAY_TIME_OPTIONS,
    GAME_TYPE_OPTIONS,
    SALE_CONDITION_OPTIONS,
    DEFAULT_DIFFICULTY,
    DEFAULT_PLAY_TIME,
    DEFAULT_GAME_TYPE,
    DEFAULT_MIN_PLAYERS,
    DEFAULT_MAX_PLAYERS,
)
from ..models import CandidateGame
from .images import filter_image_url

_LEADING_NUMBER = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)")
_TRUE_VALUES = {"true", "yes", "1"}

MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 10000


def _leading_number(value: Any) -> Optional[float]:
    """Read the number a value starts with ("45 min" -> 45.0). None when there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    match = _LEADING_NUMBER.match(str(value))
    return float(match.group(1)) if match else None


def parse_int(value: Any) -> Optional[int]:
    number = _leading_number(value)
    return int(number) if number is not None else None


def parse_float(value: Any) -> Optional[float]:
    return _leading_number(value)


def parse_bool(value: Any) -> Optional[bool]:
    """'true' / 'yes' / '1' in any case are true, any other text is false, blank is unset."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if not text:
        return None
    return text.lower() in _TRUE_VALUES


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def map_complexity_to_difficulty(weight: Any) -> str:
    """Map a BGG complexity weight (1-5 scale) onto the difficulty levels."""
    w = _leading_number(weight)
    if w is None or w <= 0:
        return DEFAULT_DIFFICULTY
    if w < 1.5:
        return DIFFICULTY_LEVELS[0]
    if w < 2.5:
        return DIFFICULTY_LEVELS[1]
    if w < 3.5:
        return DIFFICULTY_LEVELS[2]
    if w < 4.5:
        return DIFFICULTY_LEVELS[3]
    return DIFFICULTY_LEVELS[4]


def map_minutes_to_play_time(minutes: Any) -> str:
    """Map a playing time in minutes onto the play time buckets."""
    t = _leading_number(minutes)
    if t is None or t <= 0:
        return DEFAULT_PLAY_TIME
    for limit, bucket in zip((15, 30, 45, 60, 120, 180), PLAY_TIME_OPTIONS):
        if t <= limit:
            return bucket
    return PLAY_TIME_OPTIONS[-1]


def coerce_choice(value: Any, options: Sequence[str]) -> Optional[str]:
    """Return the canonical option matching ``value`` (case-insensitive), or None."""
    text = clean_text(value)
    if text is None:
        return None
    if text in options:
        return text
    lowered = text.lower()
    for option in options:
        if option.lower() == lowered:
            return option
    return None


def normalize_difficulty(value: Any) -> Optional[str]:
    """Accept a difficulty label or a numeric complexity weight."""
    choice = coerce_choice(value, DIFFICULTY_LEVELS)
    if choice:
        return choice
    if _leading_number(value) is not None:
        return map_complexity_to_difficulty(value)
    return None


def normalize_play_time(value: Any) -> Optional[str]:
    """Accept a play time label or a number of minutes."""
    choice = coerce_choice(value, PLAY_TIME_OPTIONS)
    if choice:
        return choice
    if _leading_number(value) is not None:
        return map_minutes_to_play_time(value)
    return None


def normalize_game_type(value: Any) -> Optional[str]:
    return coerce_choice(value, GAME_TYPE_OPTIONS)


def normalize_sale_condition(value: Any) -> Optional[str]:
    return coerce_choice(value, SALE_CONDITION_OPTIONS)


def dedupe_names(names: Optional[Iterable[Any]]) -> List[str]:
    """Strip, drop blanks and remove repeated names, keeping first-seen order."""
    seen = set()
    result = []
    for name in names or []:
        text = clean_text(name)
        if text and text not in seen:
            seen.add(text)
            result.append(text)
    return result


def split_names(value: Any, separator: str = ";") -> List[str]:
    text = clean_text(value)
    if not text:
        return []
    return dedupe_names(text.split(separator))


def slugify(title: str) -> str:
    """Lower-case, strip accents and collapse runs of other characters to '-'."""
    decomposed = unicodedata.normalize("NFKD", title or "")
    ascii_text = decomposed.encode("ascii", "ignore").decode("ascii").lower()
    return re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")


def title_from_slug(url: Optional[str]) -> Optional[str]:
    """Title from the last URL segment: ".../224517/brass-birmingham" -> "Brass Birmingham"."""
    parts = [part for part in (url or "").split("?")[0].split("/") if part]
    if not parts:
        return None
    slug = parts[-1]
    if slug.isdigit() or "." in slug or ":" in slug:
        return None
    words = [word for word in slug.split("-") if word]
    return " ".join(word[0].upper() + word[1:] for word in words) or None


def clean_title(title: Optional[str]) -> str:
    """Title as stored: trimmed and cut to the column limit."""
    return (title or "").strip()[:MAX_TITLE_LENGTH]


def normalize_players(min_players: Optional[int], max_players: Optional[int]) -> Tuple[int, int]:
    """Fill missing player counts and keep min <= max."""
    low = min_players if min_players and min_players > 0 else None
    high = max_players if max_players and max_players > 0 else None
    if low is not None and high is not None and low > high:
        low, high = high, low
    if low is None and high is None:
        return DEFAULT_MIN_PLAYERS, DEFAULT_MAX_PLAYERS
    if low is None:
        return min(DEFAULT_MIN_PLAYERS, high), high
    if high is None:
        return low, max(DEFAULT_MAX_PLAYERS, low)
    return low, high


def _gameplay_images(urls: Sequence[str], main_image: Optional[str]) -> List[str]:
    kept = []
    for url in urls or []:
        cleaned = filter_image_url(url)
        if cleaned and cleaned != main_image and cleaned not in kept:
            kept.append(cleaned)
    return kept


def build_game_row(game: CandidateGame, publisher_id: Optional[str] = None,
                   parent_game_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the row written to the ``games`` table.

    Every enum column gets a legal value, falling back to the documented defaults.
    Image URLs that fail the allow-list are dropped, as are gameplay images
    repeating the main image.
    """
    title = clean_title(game.title)
    image_url = filter_image_url(game.image_url) or None
    min_players, max_players = normalize_players(game.min_players, game.max_players)
    is_expansion = bool(game.is_expansion)
    is_for_sale = bool(game.is_for_sale)
    description = clean_text(game.description)

    return {
        "title": title,
        "slug": slugify(title),
        "description": description[:MAX_DESCRIPTION_LENGTH] if description else None,
        "image_url": image_url,
        "additional_images": _gameplay_images(game.additional_images, image_url),
        "bgg_id": game.bgg_id or None,
        "bgg_url": game.bgg_url or None,
        "min_players": min_players,
        "max_players": max_players,
        "suggested_age": clean_text(game.suggested_age),
        "play_time": normalize_play_time(game.play_time) or DEFAULT_PLAY_TIME,
        "difficulty": normalize_difficulty(game.difficulty) or DEFAULT_DIFFICULTY,
        "game_type": normalize_game_type(game.game_type) or DEFAULT_GAME_TYPE,
        "publisher_id": publisher_id,
        "is_expansion": is_expansion,
        "parent_game_id": parent_game_id if is_expansion else None,
        "in_base_game_box": bool(game.in_base_game_box) if is_expansion else False,
        "is_coming_soon": bool(game.is_coming_soon),
        "is_for_sale": is_for_sale,
        "sale_price": game.sale_price if is_for_sale else None,
        "sale_condition": normalize_sale_condition(game.sale_condition) if is_for_sale else None,
        "location_room": clean_text(game.location_room),
        "location_shelf": clean_text(game.location_shelf),
        "location_misc": clean_text(game.location_misc),
        "sleeved": bool(game.sleeved),
        "upgraded_components": bool(game.upgraded_components),
        "crowdfunded": bool(game.crowdfunded),
        "inserts": bool(game.inserts),
    }

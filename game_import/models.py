"""
Shared data models for the game import package.
"""

from dataclasses import dataclass, field, fields, replace, asdict
from enum import Enum
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

T = TypeVar("T")

# Fields a caller may default for every game in a batch
DEFAULT_OPTION_FIELDS = (
    "is_coming_soon",
    "is_for_sale",
    "sale_price",
    "sale_condition",
    "location_room",
    "location_shelf",
    "location_misc",
    "sleeved",
    "upgraded_components",
    "crowdfunded",
    "inserts",
)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


@dataclass
class CandidateGame:
    """One game being imported, before it is written to the store."""
    title: str = ""
    bgg_id: Optional[str] = None
    bgg_url: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    additional_images: List[str] = field(default_factory=list)
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    suggested_age: Optional[str] = None
    publisher: Optional[str] = None
    difficulty: Optional[str] = None
    play_time: Optional[str] = None
    game_type: Optional[str] = None
    mechanics: List[str] = field(default_factory=list)
    is_expansion: Optional[bool] = None
    parent_game: Optional[str] = None
    in_base_game_box: Optional[bool] = None
    is_coming_soon: Optional[bool] = None
    is_for_sale: Optional[bool] = None
    sale_price: Optional[float] = None
    sale_condition: Optional[str] = None
    location_room: Optional[str] = None
    location_shelf: Optional[str] = None
    location_misc: Optional[str] = None
    sleeved: Optional[bool] = None
    upgraded_components: Optional[bool] = None
    crowdfunded: Optional[bool] = None
    inserts: Optional[bool] = None
    purchase_price: Optional[float] = None
    purchase_date: Optional[str] = None
    # Page a single-URL import reads from when it is not a BGG game page
    source_url: Optional[str] = None

    @property
    def label(self) -> str:
        """Name used in log lines and error messages."""
        if self.title:
            return self.title
        if self.bgg_id:
            return f"BGG ID {self.bgg_id}"
        return self.bgg_url or self.source_url or "untitled game"

    def merge_missing(self, other: "CandidateGame") -> "CandidateGame":
        """
        Fill gaps in this record from ``other``.

        Values already present win. The image is the exception: a freshly
        scraped image in ``other`` replaces whatever this record holds.
        """
        updates = {}
        for f in fields(self):
            if f.name == "image_url":
                continue
            mine = getattr(self, f.name)
            theirs = getattr(other, f.name)
            if _is_empty(mine) and not _is_empty(theirs):
                updates[f.name] = theirs
        updates["image_url"] = other.image_url or self.image_url
        return replace(self, **updates)

    def with_defaults(self, options: Optional[Mapping[str, Any]]) -> "CandidateGame":
        """Apply batch-wide default options to fields the record leaves unset."""
        if not options:
            return self
        updates = {
            name: options[name]
            for name in DEFAULT_OPTION_FIELDS
            if getattr(self, name) is None and options.get(name) is not None
        }
        return replace(self, **updates) if updates else self


@dataclass
class ImportResult:
    """Summary returned for one import request."""
    success: bool = True
    imported: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    games: List[Dict[str, str]] = field(default_factory=list)
    rate_limited: bool = False

    def record_success(self, title: str, game_id: str) -> None:
        self.imported += 1
        self.games.append({"title": title, "id": game_id})

    def record_failure(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    def add_note(self, message: str) -> None:
        """Record a problem that did not stop the game from being imported."""
        self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class LookupStatus(str, Enum):
    FOUND = "found"
    MISS = "miss"
    FAILED = "failed"


@dataclass
class Lookup(Generic[T]):
    """Outcome of a call to an external collaborator."""
    status: LookupStatus
    value: Optional[T] = None
    reason: Optional[str] = None
    rate_limited: bool = False

    @classmethod
    def found(cls, value: T, reason: Optional[str] = None, rate_limited: bool = False) -> "Lookup[T]":
        return cls(LookupStatus.FOUND, value=value, reason=reason, rate_limited=rate_limited)

    @classmethod
    def miss(cls, reason: str) -> "Lookup[T]":
        return cls(LookupStatus.MISS, reason=reason)

    @classmethod
    def failed(cls, reason: str, rate_limited: bool = False) -> "Lookup[T]":
        return cls(LookupStatus.FAILED, reason=reason, rate_limited=rate_limited)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND

    @property
    def is_miss(self) -> bool:
        return self.status is LookupStatus.MISS

    @property
    def is_failed(self) -> bool:
        return self.status is LookupStatus.FAILED


@dataclass
class ScrapedPage:
    """Page content returned by a scraping collaborator."""
    url: str
    markdown: str = ""
    raw_html: str = ""

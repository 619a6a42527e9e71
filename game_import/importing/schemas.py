"""
Request bodies accepted by the importer.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import SALE_CONDITION_OPTIONS
from .normalize import coerce_choice

ImportMode = Literal["csv", "bgg_collection", "bgg_links", "single_url"]


class DefaultOptions(BaseModel):
    """Values applied to every game in a batch that does not set them itself."""
    model_config = ConfigDict(extra="ignore")

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

    @field_validator("sale_condition", mode="before")
    @classmethod
    def _sale_condition(cls, v):
        return coerce_choice(v, SALE_CONDITION_OPTIONS)

    def to_options(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ImportRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mode: ImportMode
    csv_data: Optional[str] = None
    bgg_username: Optional[str] = None
    bgg_links: Optional[List[str]] = None
    url: Optional[str] = None
    enhance_with_bgg: bool = False
    default_options: DefaultOptions = Field(default_factory=DefaultOptions)
    # Single-URL overrides
    is_expansion: Optional[bool] = None
    parent_game: Optional[str] = None
    in_base_game_box: Optional[bool] = None

    @classmethod
    def single_url(cls, body: Dict[str, Any]) -> "ImportRequest":
        """Build a single-URL request from a flat body where overrides sit next to ``url``."""
        options = {key: value for key, value in body.items() if key in DefaultOptions.model_fields}
        return cls.model_validate({
            "mode": "single_url",
            "url": body.get("url"),
            "enhance_with_bgg": True,
            "default_options": {**options, **(body.get("default_options") or {})},
            "is_expansion": body.get("is_expansion"),
            "parent_game": body.get("parent_game"),
            "in_base_game_box": body.get("in_base_game_box"),
        })

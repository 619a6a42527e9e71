"""
Find-or-create for mechanics and publishers, lookup-only for parent games.
"""

import logging
from typing import List, Optional

from ..database import GameStore
from .normalize import clean_text, dedupe_names

logger = logging.getLogger(__name__)


class EntityResolver:
    """Resolves names to row ids. A lookup always precedes a creation, so repeats reuse the first row."""

    def __init__(self, store: GameStore):
        self.store = store

    def resolve_mechanic(self, name: str) -> str:
        mechanic_id = self.store.find_mechanic(name)
        if mechanic_id:
            return mechanic_id
        logger.info(f"Creating mechanic: {name}")
        return self.store.insert_mechanic(name)

    def resolve_mechanics(self, names: List[str]) -> List[str]:
        return [self.resolve_mechanic(name) for name in dedupe_names(names)]

    def resolve_publisher(self, name: str) -> str:
        publisher_id = self.store.find_publisher(name)
        if publisher_id:
            return publisher_id
        logger.info(f"Creating publisher: {name}")
        return self.store.insert_publisher(name)

    def resolve_optional_publisher(self, name: Optional[str]) -> Optional[str]:
        name = clean_text(name)
        return self.resolve_publisher(name) if name else None

    def resolve_parent(self, title: Optional[str]) -> Optional[str]:
        """Id of an existing game with exactly this title, or None. Never creates."""
        title = clean_text(title)
        if not title:
            return None
        return self.store.find_game_by_title(title)

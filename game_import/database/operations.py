"""
Database operations for the game catalog.

Every call opens its own connection; there are no transactions spanning
calls, so each operation is an independent round trip.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from .models import create_database

logger = logging.getLogger(__name__)

GAME_COLUMNS = (
    "title", "slug", "description", "image_url", "additional_images", "bgg_id", "bgg_url",
    "min_players", "max_players", "suggested_age", "play_time", "difficulty", "game_type",
    "publisher_id", "is_expansion", "parent_game_id", "in_base_game_box", "is_coming_soon",
    "is_for_sale", "sale_price", "sale_condition", "location_room", "location_shelf", "location_misc",
    "sleeved", "upgraded_components", "crowdfunded", "inserts",
)
_COUNTABLE_TABLES = {"games", "mechanics", "publishers", "game_mechanics", "game_admin_data", "user_roles", "api_tokens"}
# Columns holding a list, stored as JSON text
JSON_COLUMNS = ("additional_images",)


def new_id() -> str:
    return str(uuid.uuid4())


class GameStore:
    """
    High-level store operations used by the importer and the authorizer.
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize the store, creating the schema when needed.

        Args:
            db_path: Path to the SQLite database
        """
        self.db_path = Path(db_path)
        create_database(str(self.db_path))

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _scalar(self, query: str, params: Iterable[Any]) -> Optional[Any]:
        with self._connect() as conn:
            row = conn.execute(query, tuple(params)).fetchone()
        return row[0] if row else None

    # Games

    def find_game_by_title(self, title: str) -> Optional[str]:
        """Id of the game with exactly this title (case-sensitive), if any."""
        return self._scalar("SELECT id FROM games WHERE title = ? LIMIT 1", (title,))

    def insert_game(self, row: Dict[str, Any]) -> str:
        """
        Insert a game row and return its new id.

        Raises:
            sqlite3.Error: the row violates a constraint or the write failed
        """
        game_id = new_id()
        columns = ["id"] + [column for column in GAME_COLUMNS if column in row]
        values = [game_id] + [
            json.dumps(row[column] or []) if column in JSON_COLUMNS else row[column]
            for column in columns[1:]
        ]
        placeholders = ", ".join("?" for _ in columns)
        with self._connect() as conn:
            conn.execute(f"INSERT INTO games ({', '.join(columns)}) VALUES ({placeholders})", values)
        logger.debug(f"Inserted game {row.get('title')!r} as {game_id}")
        return game_id

    def get_game(self, game_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM games WHERE id = ?", (game_id,)).fetchone()
        if not row:
            return None
        game = dict(row)
        for column in JSON_COLUMNS:
            game[column] = json.loads(game[column] or "[]")
        return game

    def get_game_mechanics(self, game_id: str) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT m.name FROM mechanics m
                JOIN game_mechanics gm ON gm.mechanic_id = m.id
                WHERE gm.game_id = ?
                ORDER BY m.name
                """,
                (game_id,),
            ).fetchall()
        return [row[0] for row in rows]

    # Reference tables

    def find_mechanic(self, name: str) -> Optional[str]:
        return self._scalar("SELECT id FROM mechanics WHERE name = ?", (name,))

    def insert_mechanic(self, name: str) -> str:
        mechanic_id = new_id()
        with self._connect() as conn:
            conn.execute("INSERT INTO mechanics (id, name) VALUES (?, ?)", (mechanic_id, name))
        return mechanic_id

    def find_publisher(self, name: str) -> Optional[str]:
        return self._scalar("SELECT id FROM publishers WHERE name = ?", (name,))

    def insert_publisher(self, name: str) -> str:
        publisher_id = new_id()
        with self._connect() as conn:
            conn.execute("INSERT INTO publishers (id, name) VALUES (?, ?)", (publisher_id, name))
        return publisher_id

    def link_mechanics(self, game_id: str, mechanic_ids: Iterable[str]) -> None:
        pairs = [(game_id, mechanic_id) for mechanic_id in mechanic_ids]
        if not pairs:
            return
        with self._connect() as conn:
            conn.executemany("INSERT OR IGNORE INTO game_mechanics (game_id, mechanic_id) VALUES (?, ?)", pairs)

    def insert_admin_data(self, game_id: str, purchase_price: Optional[float] = None,
                          purchase_date: Optional[str] = None) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO game_admin_data (game_id, purchase_price, purchase_date) VALUES (?, ?, ?)",
                (game_id, purchase_price, purchase_date),
            )

    def get_admin_data(self, game_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM game_admin_data WHERE game_id = ?", (game_id,)).fetchone()
        return dict(row) if row else None

    def count_rows(self, table: str) -> int:
        if table not in _COUNTABLE_TABLES:
            raise ValueError(f"Unknown table: {table}")
        return self._scalar(f"SELECT COUNT(*) FROM {table}", ()) or 0

    # Users

    def grant_role(self, user_id: str, role: str) -> None:
        with self._connect() as conn:
            conn.execute("INSERT OR IGNORE INTO user_roles (user_id, role) VALUES (?, ?)", (user_id, role))

    def user_has_role(self, user_id: str, role: str) -> bool:
        return self._scalar("SELECT 1 FROM user_roles WHERE user_id = ? AND role = ?", (user_id, role)) is not None

    def add_token(self, token_hash: str, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute("INSERT INTO api_tokens (token_hash, user_id) VALUES (?, ?)", (token_hash, user_id))

    def find_token_user(self, token_hash: str) -> Optional[str]:
        return self._scalar("SELECT user_id FROM api_tokens WHERE token_hash = ?", (token_hash,))

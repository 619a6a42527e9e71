import logging
import os
import sqlite3
from typing import Sequence

from ..config import DIFFICULTY_LEVELS, GAME_TYPE_OPTIONS, PLAY_TIME_OPTIONS, SALE_CONDITION_OPTIONS

logger = logging.getLogger(__name__)


def _sql_choices(values: Sequence[str]) -> str:
    return ", ".join("'" + value.replace("'", "''") + "'" for value in values)


def create_database(db_path="game_catalog.db"):
    """Create the database and tables for the game catalog."""

    # Ensure database directory exists (only if path contains directory)
    db_dir = os.path.dirname(str(db_path))
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS games (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            slug TEXT,  -- derived from title, not unique
            description TEXT,
            image_url TEXT,
            additional_images TEXT NOT NULL DEFAULT '[]',  -- JSON array of gameplay image URLs
            bgg_id TEXT,
            bgg_url TEXT,
            min_players INTEGER NOT NULL DEFAULT 2,
            max_players INTEGER NOT NULL DEFAULT 4,
            suggested_age TEXT,
            play_time TEXT NOT NULL DEFAULT '45-60 Minutes'
                CHECK (play_time IN ({_sql_choices(PLAY_TIME_OPTIONS)})),
            difficulty TEXT NOT NULL DEFAULT '3 - Medium'
                CHECK (difficulty IN ({_sql_choices(DIFFICULTY_LEVELS)})),
            game_type TEXT NOT NULL DEFAULT 'Board Game'
                CHECK (game_type IN ({_sql_choices(GAME_TYPE_OPTIONS)})),
            publisher_id TEXT REFERENCES publishers(id),
            is_expansion INTEGER NOT NULL DEFAULT 0,
            parent_game_id TEXT REFERENCES games(id),
            in_base_game_box INTEGER NOT NULL DEFAULT 0,
            is_coming_soon INTEGER NOT NULL DEFAULT 0,
            is_for_sale INTEGER NOT NULL DEFAULT 0,
            sale_price REAL,
            sale_condition TEXT
                CHECK (sale_condition IS NULL OR sale_condition IN ({_sql_choices(SALE_CONDITION_OPTIONS)})),
            location_room TEXT,
            location_shelf TEXT,
            location_misc TEXT,
            sleeved INTEGER NOT NULL DEFAULT 0,
            upgraded_components INTEGER NOT NULL DEFAULT 0,
            crowdfunded INTEGER NOT NULL DEFAULT 0,
            inserts INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK (min_players >= 1 AND min_players <= max_players)
        )
    """)
    # Catalogs created before gameplay images were stored
    columns = {row[1] for row in cursor.execute("PRAGMA table_info(games)")}
    if "additional_images" not in columns:
        cursor.execute("ALTER TABLE games ADD COLUMN additional_images TEXT NOT NULL DEFAULT '[]'")
    # Title lookups are exact and case-sensitive (binary collation)
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_games_title ON games(title)")

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS publishers (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS mechanics (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL UNIQUE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS game_mechanics (
            game_id TEXT NOT NULL REFERENCES games(id) ON DELETE CASCADE,
            mechanic_id TEXT NOT NULL REFERENCES mechanics(id) ON DELETE CASCADE,
            UNIQUE (game_id, mechanic_id)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS game_admin_data (
            game_id TEXT PRIMARY KEY REFERENCES games(id) ON DELETE CASCADE,
            purchase_price REAL,
            purchase_date TEXT
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS user_roles (
            user_id TEXT NOT NULL,
            role TEXT NOT NULL,
            UNIQUE (user_id, role)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS api_tokens (
            token_hash TEXT PRIMARY KEY,  -- SHA-256 hex digest, the raw token is never stored
            user_id TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    conn.commit()
    conn.close()
    logger.info(f"Database ready at {db_path}")


if __name__ == "__main__":
    create_database()

"""
Database module for the game catalog.

This module handles:
- Database schema creation
- Game, mechanic and publisher storage
- Admin roles and API tokens
"""

from .models import create_database
from .operations import GameStore

__all__ = [
    "create_database",
    "GameStore",
]

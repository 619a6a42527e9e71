"""
Game Import Package - bulk import of board games into a catalog.

This package provides:
1. CSV, BGG collection, BGG link and single-URL imports
2. Optional enhancement from BoardGameGeek pages and an AI extractor
"""

__version__ = "0.1.0"

from .database import GameStore
from .importing import ImportOrchestrator, ImportRequest, create_orchestrator
from .models import CandidateGame, ImportResult
from .logging_config import setup_logging

__all__ = [
    "GameStore",
    "ImportOrchestrator",
    "ImportRequest",
    "create_orchestrator",
    "CandidateGame",
    "ImportResult",
    "setup_logging",
]

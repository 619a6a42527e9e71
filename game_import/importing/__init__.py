"""
Importing module for bringing games into the catalog.

This package handles:
- CSV parsing and format detection
- Value normalization and image filtering
- BGG, scraping and AI enhancement
- Orchestrated per-game flow (LangGraph)
"""

from .orchestrator import ImportOrchestrator, create_orchestrator
from .schemas import ImportRequest, DefaultOptions
from .fetcher import GameFetcher
from .resolver import EntityResolver
from .enhancement import EnhancementGate, EnhancementState

__all__ = [
    "ImportOrchestrator",
    "create_orchestrator",
    "ImportRequest",
    "DefaultOptions",
    "GameFetcher",
    "EntityResolver",
    "EnhancementGate",
    "EnhancementState",
]

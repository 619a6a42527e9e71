"""
Command-line interface for the game import package.
"""

from .main import main

__all__ = ["main"]

"""
Error types and error handling utilities for the game import package.
"""

import logging
from typing import Any, Callable
from functools import wraps

logger = logging.getLogger(__name__)


class GameImportError(Exception):
    """Base class for request-level failures. Carries the HTTP status to report."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(GameImportError):
    """Missing or invalid bearer credential."""
    status_code = 401


class AuthorizationError(GameImportError):
    """Authenticated caller is not an administrator, or the role check failed."""
    status_code = 403


class InvalidRequestError(GameImportError):
    """Required input is missing or malformed."""
    status_code = 400


class CollectionError(GameImportError):
    """The BGG collection endpoint answered with a failure."""
    status_code = 502


class CollectionTimeoutError(CollectionError):
    """The BGG collection endpoint never finished generating the listing."""
    status_code = 504


def handle_errors(default_return: Any = None, log_error: bool = True):
    """
    Decorator for best-effort helpers: log the exception and return a default.

    Only meant for parsing steps whose failure is an accepted degraded path.

    Args:
        default_return: Value to return on error
        log_error: Whether to log the error
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if log_error:
                    logger.warning(f"Error in {func.__name__}: {e}")
                return default_return
        return wrapper
    return decorator

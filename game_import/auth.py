"""
Bearer-token authorization against the catalog store.
"""

import hashlib
import logging
import secrets
import sqlite3
from typing import Optional

from .database import GameStore
from .error_handling import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenAuthorizer:
    """Resolves ``Authorization: Bearer <token>`` to a user id and requires the admin role."""

    def __init__(self, store: GameStore):
        self.store = store

    def authorize(self, authorization: Optional[str]) -> str:
        """
        Return the caller's user id when they are an administrator.

        Raises:
            AuthenticationError: missing header, wrong scheme or unknown token
            AuthorizationError: the user is not an admin, or the role check failed
        """
        if not authorization:
            raise AuthenticationError("Missing authorization header")
        scheme, _, token = authorization.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise AuthenticationError("Invalid authorization header")

        try:
            user_id = self.store.find_token_user(hash_token(token))
        except sqlite3.Error as e:
            logger.error(f"Token lookup failed: {e}")
            raise AuthenticationError("Invalid token")
        if not user_id:
            raise AuthenticationError("Invalid token")

        try:
            is_admin = self.store.user_has_role(user_id, ADMIN_ROLE)
        except sqlite3.Error as e:
            logger.error(f"Role check failed for {user_id}: {e}")
            raise AuthorizationError("Admin access required")
        if not is_admin:
            logger.warning(f"User {user_id} attempted an import without the admin role")
            raise AuthorizationError("Admin access required")
        return user_id

    def issue_token(self, user_id: str, admin: bool = True) -> str:
        """Create a new token for ``user_id``. Only the digest is stored."""
        token = secrets.token_urlsafe(32)
        self.store.add_token(hash_token(token), user_id)
        if admin:
            self.store.grant_role(user_id, ADMIN_ROLE)
        return token

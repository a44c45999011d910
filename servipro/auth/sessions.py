"""
Refresh sessions.

Each refresh token is stored once, lives 30 days at most and can be
redeemed exactly once.
"""

import logging
from typing import Optional

from ..storage import DocumentStore, TTLIndex
from .models import RefreshSession

logger = logging.getLogger(__name__)

COLLECTION = "refresh_tokens"
DEFAULT_TTL_SECONDS = 86400 * 30  # 30 days


class SessionStore:
    """Persisted refresh tokens with single-use redemption."""

    def __init__(self, store: DocumentStore, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self._sessions = store.collection(
            COLLECTION,
            unique=["token"],
            ttl=TTLIndex("created_at", ttl_seconds)
        )

    def create(self, token: str, user_id: str) -> RefreshSession:
        """Persist a freshly generated refresh token for user_id."""
        session = RefreshSession(token=token, user_id=user_id)
        self._sessions.insert_one(session.to_document())
        logger.debug(f"Refresh session created for user {user_id}")
        return session

    def get(self, token: str) -> Optional[RefreshSession]:
        """Live session for token, if any."""
        data = self._sessions.find_one({"token": token})
        return RefreshSession.from_document(data) if data else None

    def redeem(self, token: str) -> Optional[RefreshSession]:
        """
        Atomically delete and return the session.

        Of several concurrent callers with the same token, only one gets it.
        """
        data = self._sessions.find_one_and_delete({"token": token})
        if data is None:
            return None
        logger.debug(f"Refresh session redeemed for user {data['user_id']}")
        return RefreshSession.from_document(data)

    def count_for_user(self, user_id: str) -> int:
        return self._sessions.count({"user_id": user_id})

"""
Pending verification codes.

One code per phone: issuing replaces whatever was there. Codes vanish
300 seconds after issue whether or not they were used.
"""

import logging
from typing import Optional

from ..storage import DocumentStore, TTLIndex
from .models import PendingVerification

logger = logging.getLogger(__name__)

COLLECTION = "codigos_verificacion"
DEFAULT_TTL_SECONDS = 300


class VerificationStore:
    """TTL-expiring (phone, code) records."""

    def __init__(self, store: DocumentStore, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self._codes = store.collection(
            COLLECTION,
            unique=["phone"],
            ttl=TTLIndex("created_at", ttl_seconds)
        )

    def issue(self, phone: str, code: str) -> PendingVerification:
        """Insert-or-replace the code for phone; the latest code wins."""
        pending = PendingVerification(phone=phone, code=code)
        self._codes.replace_one({"phone": phone}, pending.to_document(), upsert=True)
        logger.debug(f"Verification code stored for {phone}")
        return pending

    def get(self, phone: str) -> Optional[PendingVerification]:
        """Live code for phone, if any."""
        data = self._codes.find_one({"phone": phone})
        return PendingVerification.from_document(data) if data else None

    def consume(self, phone: str, code: str) -> Optional[PendingVerification]:
        """
        Atomically take the code if it matches.

        Returns:
            The consumed record, or None when there is no live code for
            phone or it differs from code
        """
        data = self._codes.find_one_and_delete({"phone": phone, "code": code})
        if data is None:
            return None
        logger.debug(f"Verification code consumed for {phone}")
        return PendingVerification.from_document(data)

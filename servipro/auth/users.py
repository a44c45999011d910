"""
User storage and management.

Users are keyed by a generated user_id and indexed uniquely by phone.
"""

import logging
import uuid
from typing import Optional

from ..errors import DuplicateKeyError
from ..storage import DocumentStore, utcnow
from .codes import normalize_phone
from .models import Role, User

logger = logging.getLogger(__name__)

COLLECTION = "usuarios"


class UserStore:
    """Identity store on top of a document collection."""

    def __init__(self, store: DocumentStore):
        self._users = store.collection(COLLECTION, unique=["user_id", "phone"])

    @staticmethod
    def _normalize(phone: str) -> str:
        normalized = normalize_phone(phone)
        if not normalized:
            raise ValueError(f"Invalid phone number: {phone}")
        return normalized

    def create_user(
        self,
        phone: str,
        role: Role = Role.STANDARD,
        verified: bool = False
    ) -> User:
        """
        Create a new user.

        Args:
            phone: Phone number (will be normalized)
            role: Initial role
            verified: Initial verified flag

        Returns:
            Created User object

        Raises:
            ValueError: If phone is invalid
            DuplicateKeyError: If a user with that phone already exists
        """
        user = User(
            user_id=str(uuid.uuid4()),
            phone=self._normalize(phone),
            verified=verified,
            role=role
        )
        self._users.insert_one(user.to_document())
        logger.info(f"Created user: {user.phone} (role={user.role.value})")
        return user

    def get_by_phone(self, phone: str) -> Optional[User]:
        """
        Get user by phone number.

        Returns:
            User if found, None otherwise
        """
        normalized = normalize_phone(phone)
        if not normalized:
            return None

        data = self._users.find_one({"phone": normalized})
        return User.from_document(data) if data else None

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by user ID."""
        data = self._users.find_one({"user_id": user_id})
        return User.from_document(data) if data else None

    def get_or_create(self, phone: str, role: Role = Role.STANDARD) -> User:
        """
        Return the user for phone, creating it with role if missing.

        A concurrent creation of the same phone is resolved by the unique
        index: the loser re-reads the winner's record.
        """
        user = self.get_by_phone(phone)
        if user:
            return user

        try:
            return self.create_user(phone, role=role)
        except DuplicateKeyError:
            logger.debug(f"User {phone} created concurrently, re-reading")
            user = self.get_by_phone(phone)
            if user is None:
                raise
            return user

    def _update(self, user_id: str, **fields) -> User:
        data = self._users.update_one({"user_id": user_id}, {**fields, "updated_at": utcnow()})
        if data is None:
            raise ValueError(f"User {user_id} not found")
        return User.from_document(data)

    def set_role(self, user_id: str, role: Role) -> User:
        """
        Change a user's role.

        Raises:
            ValueError: If user doesn't exist
        """
        user = self._update(user_id, role=role.value)
        logger.info(f"Role of {user.phone} set to {role.value}")
        return user

    def set_verified(self, user_id: str, verified: bool = True) -> User:
        """
        Flip a user's verified flag.

        Raises:
            ValueError: If user doesn't exist
        """
        user = self._update(user_id, verified=verified)
        logger.debug(f"Verified flag of {user.phone} set to {verified}")
        return user

    def count(self) -> int:
        return self._users.count()

"""
Access guard.

Resolves the acting user from a bearer access token and checks roles.
Access tokens are not revocable: a token stays valid until it expires,
but a user deleted in the meantime is still rejected.
"""

import logging
from typing import Optional

from ..errors import (
    ForbiddenError,
    TokenInvalidError,
    TokenMissingError,
    UnauthenticatedError,
    UserInvalidError,
)
from .jwt_handler import JWTHandler
from .models import Role, User
from .users import UserStore

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class AccessGuard:
    """Stateless gate in front of protected routes."""

    def __init__(self, jwt_handler: JWTHandler, users: UserStore):
        self.jwt = jwt_handler
        self.users = users

    def authenticate(self, authorization: Optional[str]) -> User:
        """
        Resolve the user behind an Authorization header.

        Args:
            authorization: Raw header value, expected as "Bearer <token>"

        Returns:
            The authenticated User

        Raises:
            TokenMissingError: Header absent or not a Bearer header
            TokenInvalidError: Bad signature, malformed or expired token
            UserInvalidError: Token is valid but its user no longer exists
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise TokenMissingError()

        token = authorization[len(BEARER_PREFIX):].strip()
        payload = self.jwt.verify_token(token) if token else None
        if payload is None:
            raise TokenInvalidError()

        user = self.users.get_by_id(payload.user_id)
        if user is None:
            logger.warning(f"Valid token for missing user {payload.user_id}")
            raise UserInvalidError()

        return user

    @staticmethod
    def require_role(user: Optional[User], role: Role = Role.ADMIN) -> User:
        """
        Check an already authenticated user's role.

        Raises:
            UnauthenticatedError: No user was resolved upstream
            ForbiddenError: The user's role does not match
        """
        if user is None:
            raise UnauthenticatedError()
        if user.role != role:
            logger.info(f"Role {role.value} required, {user.phone} has {user.role.value}")
            raise ForbiddenError()
        return user

"""
JWT access token handler.

Issues and validates the short-lived signed access tokens. Refresh tokens
are opaque random strings persisted by the session store, not JWTs.
"""

import time
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from jose import jwt, JWTError

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "HS256"
DEFAULT_ACCESS_TOKEN_EXPIRE_SECONDS = 3600  # 1 hour


@dataclass
class TokenPayload:
    """JWT token payload."""
    user_id: str
    phone: str
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TokenPayload":
        return cls(
            user_id=data["user_id"],
            phone=data["phone"],
            exp=int(data["exp"]),
            iat=int(data["iat"]),
        )


class JWTHandler:
    """
    Handles access token generation and validation.

    The secret, algorithm and lifetime are fixed when the handler is built
    and never change afterwards.
    """

    def __init__(
        self,
        secret_key: str,
        expires_in: int = DEFAULT_ACCESS_TOKEN_EXPIRE_SECONDS,
        algorithm: str = DEFAULT_ALGORITHM
    ):
        """
        Initialize JWT handler.

        Args:
            secret_key: Secret key for signing tokens
            expires_in: Access token lifetime in seconds
            algorithm: Signing algorithm
        """
        if not secret_key:
            raise ValueError("JWT secret key is required")

        self._secret_key = secret_key
        self.expires_in = expires_in
        self.algorithm = algorithm

    def create_access_token(
        self,
        user_id: str,
        phone: str,
        expires_in: Optional[int] = None
    ) -> str:
        """
        Create an access token.

        Args:
            user_id: Unique user identifier
            phone: User's phone number
            expires_in: Custom expiration in seconds (default: configured lifetime)

        Returns:
            Encoded JWT token string
        """
        now = int(time.time())
        exp = now + (self.expires_in if expires_in is None else expires_in)

        payload = TokenPayload(user_id=user_id, phone=phone, exp=exp, iat=now)

        token = jwt.encode(payload.to_dict(), self._secret_key, algorithm=self.algorithm)
        logger.debug(f"Created access token for user {user_id}, expires in {exp - now}s")
        return token

    def verify_token(self, token: str) -> Optional[TokenPayload]:
        """
        Verify and decode a token.

        Malformed, badly signed and expired tokens are all rejected the
        same way.

        Args:
            token: JWT token string

        Returns:
            TokenPayload if valid, None if invalid or expired
        """
        try:
            data = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
            payload = TokenPayload.from_dict(data)
        except (JWTError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Token verification failed: {e}")
            return None

        if payload.exp < int(time.time()):
            logger.debug("Token expired")
            return None

        return payload

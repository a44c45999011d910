"""
Authentication module for SERVIPRO.

Credential generation, the three authentication stores and the access guard.
"""

from .codes import generate_refresh_token, generate_verification_code, normalize_phone
from .guard import AccessGuard
from .jwt_handler import JWTHandler, TokenPayload
from .models import AuthResult, AuthTokens, PendingVerification, RefreshSession, Role, User
from .sessions import SessionStore
from .users import UserStore
from .verifications import VerificationStore

__all__ = [
    "AccessGuard",
    "AuthResult",
    "AuthTokens",
    "JWTHandler",
    "PendingVerification",
    "RefreshSession",
    "Role",
    "SessionStore",
    "TokenPayload",
    "User",
    "UserStore",
    "VerificationStore",
    "generate_refresh_token",
    "generate_verification_code",
    "normalize_phone",
]

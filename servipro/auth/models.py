"""
Authentication data models.

User is the long-lived identity. PendingVerification and RefreshSession
are short-lived records that point at a phone or a user but never own it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..storage import utcnow


class Role(str, Enum):
    """Closed set of roles."""
    STANDARD = "usuario"
    ADMIN = "admin"


@dataclass
class User:
    """User data model."""
    user_id: str
    phone: str  # Normalized E.164 number, unique
    verified: bool = False
    role: Role = Role.STANDARD
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_document(self) -> dict:
        return {
            "user_id": self.user_id,
            "phone": self.phone,
            "verified": self.verified,
            "role": self.role.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: dict) -> "User":
        return cls(
            user_id=data["user_id"],
            phone=data["phone"],
            verified=data.get("verified", False),
            role=Role(data.get("role", Role.STANDARD.value)),
            created_at=data.get("created_at") or utcnow(),
            updated_at=data.get("updated_at") or utcnow(),
        )

    def summary(self, include_role: bool = False) -> dict:
        """Public view returned by the login endpoints."""
        data = {"id": self.user_id, "telefono": self.phone}
        if include_role:
            data["rol"] = self.role.value
        return data


@dataclass
class PendingVerification:
    """A one-time code waiting to be used for a phone."""
    phone: str
    code: str
    created_at: datetime = field(default_factory=utcnow)

    def to_document(self) -> dict:
        return {"phone": self.phone, "code": self.code, "created_at": self.created_at}

    @classmethod
    def from_document(cls, data: dict) -> "PendingVerification":
        return cls(phone=data["phone"], code=data["code"], created_at=data["created_at"])


@dataclass
class RefreshSession:
    """A persisted, single-use refresh token."""
    token: str
    user_id: str
    created_at: datetime = field(default_factory=utcnow)

    def to_document(self) -> dict:
        return {"token": self.token, "user_id": self.user_id, "created_at": self.created_at}

    @classmethod
    def from_document(cls, data: dict) -> "RefreshSession":
        return cls(token=data["token"], user_id=data["user_id"], created_at=data["created_at"])


@dataclass
class AuthTokens:
    """Access/refresh pair handed to the client."""
    access_token: str
    refresh_token: str

    def to_dict(self) -> dict:
        return {"token": self.access_token, "refreshToken": self.refresh_token}


@dataclass
class AuthResult:
    """Successful login-like result: tokens plus the identity they belong to."""
    tokens: AuthTokens
    user: Optional[User] = None

    def to_dict(self, include_role: bool = False) -> dict:
        result = self.tokens.to_dict()
        if self.user:
            result["usuario"] = self.user.summary(include_role=include_role)
        return result

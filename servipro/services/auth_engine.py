"""
Authentication engine.

Drives the per-phone flow

    Unregistered --register--> CodeSent --verify/login--> Verified/LoggedIn

plus refresh-token rotation and the master-code shortcut to the admin
identity.

Expected rejections are raised as AuthError subclasses. Anything else
(store outage, SMS provider failure, ...) is logged with its traceback and
re-raised as an InternalError carrying the operation's generic code, so
callers never see provider or database detail.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Optional, Protocol

from ..auth import (
    AuthResult,
    AuthTokens,
    JWTHandler,
    Role,
    SessionStore,
    User,
    UserStore,
    VerificationStore,
    generate_refresh_token,
    generate_verification_code,
    normalize_phone,
)
from ..auth.codes import codes_match
from ..config import AuthConfig
from ..errors import (
    AuthError,
    CodeInvalidError,
    CodeInvalidOrExpiredError,
    InternalError,
    MasterCodeInvalidError,
    RefreshTokenInvalidError,
    UserNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Anything that can deliver a verification code to a phone."""

    def send_verification_code(self, to_phone: str, code: str) -> str:
        ...


class AuthEngine:
    """
    Service for phone-based authentication.

    Handles:
    - Registration (code issue + SMS)
    - Code verification
    - Login with code (find-or-create user, token pair)
    - Refresh token rotation
    - Master access for the admin identity
    """

    def __init__(
        self,
        config: AuthConfig,
        users: UserStore,
        verifications: VerificationStore,
        sessions: SessionStore,
        jwt_handler: JWTHandler,
        notifier: Notifier,
        code_generator: Optional[Callable[[], str]] = None,
        token_generator: Optional[Callable[[], str]] = None
    ):
        """
        Initialize the engine.

        Args:
            config: Immutable auth configuration (master code, admin phone, ...)
            users: Identity store
            verifications: Pending verification store
            sessions: Refresh session store
            jwt_handler: Access token issuer
            notifier: SMS sender
            code_generator: Verification code source (default: CSPRNG 6 digits)
            token_generator: Refresh token source (default: CSPRNG 40 bytes hex)
        """
        self.config = config
        self.users = users
        self.verifications = verifications
        self.sessions = sessions
        self.jwt = jwt_handler
        self.notifier = notifier
        self._generate_code = code_generator or generate_verification_code
        self._generate_refresh_token = token_generator or generate_refresh_token

    @contextmanager
    def _boundary(self, error_code: str, operation: str):
        try:
            yield
        except AuthError:
            raise
        except Exception as e:
            logger.error(f"{operation} failed: {e}", exc_info=True)
            raise InternalError(error_code) from e

    @staticmethod
    def _phone(phone: str) -> str:
        normalized = normalize_phone(phone)
        if not normalized:
            raise ValidationError([{
                "campo": "telefono",
                "mensaje": "El teléfono debe tener formato internacional, ej: +34600111222"
            }])
        return normalized

    def _issue_tokens(self, user: User) -> AuthTokens:
        access = self.jwt.create_access_token(user_id=user.user_id, phone=user.phone)
        refresh = self._generate_refresh_token()
        self.sessions.create(refresh, user.user_id)
        return AuthTokens(access_token=access, refresh_token=refresh)

    def register(self, phone: str) -> None:
        """
        Issue a verification code for phone and text it.

        The code is stored before the SMS is attempted, and replaces any
        earlier code for the same phone.

        Raises:
            InternalError: ERROR_REGISTRO_USUARIO on store or SMS failure
        """
        with self._boundary("ERROR_REGISTRO_USUARIO", f"Register {phone}"):
            phone = self._phone(phone)
            code = self._generate_code()
            self.verifications.issue(phone, code)
            self.notifier.send_verification_code(phone, code)

        logger.info(f"Verification code sent to {phone}")

    def verify(self, phone: str, code: str) -> None:
        """
        Check and consume a code.

        Has no effect on the user record.

        Raises:
            CodeInvalidOrExpiredError: Wrong, already used or expired code
            InternalError: ERROR_VERIFICACION
        """
        with self._boundary("ERROR_VERIFICACION", f"Verify {phone}"):
            phone = self._phone(phone)
            if self.verifications.consume(phone, code) is None:
                logger.info(f"Verification rejected for {phone}")
                raise CodeInvalidOrExpiredError()

        logger.info(f"Code verified for {phone}")

    def login(self, phone: str, code: str) -> AuthResult:
        """
        Log in with a code, creating the user on first login.

        Returns:
            AuthResult with access token, refresh token and user

        Raises:
            CodeInvalidError: No live code for phone, or a different one
            InternalError: ERROR_LOGIN
        """
        with self._boundary("ERROR_LOGIN", f"Login {phone}"):
            phone = self._phone(phone)
            if self.verifications.consume(phone, code) is None:
                logger.info(f"Login rejected for {phone}")
                raise CodeInvalidError()

            # User creation and session creation are separate writes.
            user = self.users.get_or_create(phone)
            tokens = self._issue_tokens(user)

        logger.info(f"User logged in: {user.phone}")
        return AuthResult(tokens=tokens, user=user)

    def refresh(self, refresh_token: str) -> AuthResult:
        """
        Exchange a refresh token for a new token pair.

        The presented token is deleted before the new pair is issued; if
        the response is lost the client must log in again.

        Raises:
            RefreshTokenInvalidError: Unknown, already used or expired token
            UserNotFoundError: The session's user no longer exists
            InternalError: ERROR_REFRESH_TOKEN
        """
        with self._boundary("ERROR_REFRESH_TOKEN", "Token refresh"):
            session = self.sessions.get(refresh_token)
            if session is None:
                raise RefreshTokenInvalidError()

            user = self.users.get_by_id(session.user_id)
            if user is None:
                logger.warning(f"Refresh session for missing user {session.user_id}")
                raise UserNotFoundError()

            if self.sessions.redeem(refresh_token) is None:
                logger.warning(f"Refresh token for {user.phone} redeemed concurrently")
                raise RefreshTokenInvalidError()

            tokens = self._issue_tokens(user)

        logger.info(f"Tokens rotated for {user.phone}")
        return AuthResult(tokens=tokens, user=user)

    def master_access(self, code: str) -> AuthResult:
        """
        Log in as the configured admin with the master code.

        Skips phone verification and SMS entirely. The admin user is
        created on first use and promoted to admin if it exists with
        another role.

        Raises:
            MasterCodeInvalidError: Wrong master code
            InternalError: ERROR_ACCESO_MAESTRO
        """
        with self._boundary("ERROR_ACCESO_MAESTRO", "Master access"):
            if not codes_match(self.config.master_code, code):
                logger.warning("Master access attempt with wrong code")
                raise MasterCodeInvalidError()

            user = self.users.get_by_phone(self.config.admin_phone)
            if user is None:
                user = self.users.get_or_create(self.config.admin_phone, role=Role.ADMIN)
                logger.info("Master admin user created")
            if user.role != Role.ADMIN:
                user = self.users.set_role(user.user_id, Role.ADMIN)

            tokens = self._issue_tokens(user)

        logger.info("Master access granted")
        return AuthResult(tokens=tokens, user=user)

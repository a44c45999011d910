"""
API dependencies.

Provides dependency injection for services and authentication.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Header

from servipro.auth import (
    AccessGuard,
    JWTHandler,
    Role,
    SessionStore,
    User,
    UserStore,
    VerificationStore,
)
from servipro.config import Config, load_config
from servipro.services import AuthEngine, Notifier, SMSService
from servipro.storage import Clock, DocumentStore, create_store

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Container for all services."""
    config: Config
    store: DocumentStore
    users: UserStore
    verifications: VerificationStore
    sessions: SessionStore
    jwt: JWTHandler
    notifier: Notifier
    engine: AuthEngine
    guard: AccessGuard


def build_services(
    config: Config,
    store: Optional[DocumentStore] = None,
    notifier: Optional[Notifier] = None,
    clock: Optional[Clock] = None
) -> Services:
    """
    Wire stores, credential issuer, notifier, engine and guard.

    Args:
        config: Loaded configuration
        store: Document store (built from config.storage if omitted)
        notifier: SMS sender (Twilio from config.twilio if omitted)
        clock: Time source for in-process TTL enforcement
    """
    auth_config = config.auth
    store = store or create_store(config.storage, clock=clock)

    users = UserStore(store)
    verifications = VerificationStore(store, ttl_seconds=auth_config.verification_ttl_seconds)
    sessions = SessionStore(store, ttl_seconds=auth_config.refresh_ttl_seconds)
    jwt = JWTHandler(
        secret_key=auth_config.jwt_secret,
        expires_in=auth_config.jwt_expiration_seconds,
        algorithm=auth_config.jwt_algorithm
    )
    notifier = notifier or SMSService(config.twilio)

    engine = AuthEngine(
        config=auth_config,
        users=users,
        verifications=verifications,
        sessions=sessions,
        jwt_handler=jwt,
        notifier=notifier
    )

    return Services(
        config=config,
        store=store,
        users=users,
        verifications=verifications,
        sessions=sessions,
        jwt=jwt,
        notifier=notifier,
        engine=engine,
        guard=AccessGuard(jwt, users)
    )


# Global services instance (singleton)
_services: Optional[Services] = None


def get_services(config: Optional[Config] = None) -> Services:
    """
    Get or create the services singleton.

    This initializes all services on first call.
    """
    global _services

    if _services is None:
        logger.info("Initializing services...")
        _services = build_services(config or load_config())
        logger.info("Services initialized successfully")

    return _services


def close_services():
    """Close and cleanup services."""
    global _services
    if _services:
        _services.store.close()
        _services = None
        logger.info("Services closed")


# Dependency for getting services
def services_dep() -> Services:
    """FastAPI dependency for services."""
    return get_services()


ServicesDep = Annotated[Services, Depends(services_dep)]


def get_current_user(
    services: ServicesDep,
    authorization: Annotated[Optional[str], Header()] = None
) -> User:
    """
    Resolve the caller from the Authorization header.

    Raises TOKEN_FALTANTE, TOKEN_INVALIDO or USUARIO_INVALIDO (all 401).
    """
    return services.guard.authenticate(authorization)


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_admin(user: CurrentUser) -> User:
    """Let only admins through (403 ACCESO_NO_AUTORIZADO otherwise)."""
    AccessGuard.require_role(user, Role.ADMIN)
    return user


AdminUser = Annotated[User, Depends(require_admin)]

"""
Pytest configuration and shared fixtures.

This module provides common fixtures for testing:
- A controllable clock for TTL expiry
- In-memory stores
- JWT handling
- A recording SMS notifier
- The authentication engine and API client
"""

import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import Generator, List, Optional, Tuple
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before imports
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test_jwt_secret_key_for_testing_only_32bytes!"
os.environ["JWT_EXPIRATION"] = "1h"
os.environ["TWILIO_ACCOUNT_SID"] = "ACtest"
os.environ["TWILIO_AUTH_TOKEN"] = "test_twilio_token"
os.environ["TWILIO_PHONE_NUMBER"] = "+15005550006"
os.environ["CODIGO_MAESTRO"] = "maestro-test-2024"
os.environ["TELEFONO_ADMIN"] = "+34999000111"
os.environ["STORAGE_BACKEND"] = "memory"

from servipro.auth import JWTHandler, SessionStore, UserStore, VerificationStore
from servipro.config import AuthConfig, Config, StorageConfig, TwilioConfig
from servipro.errors import SendFailureError
from servipro.services import AuthEngine
from servipro.storage import MemoryStore, utcnow


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(scope="session")
def test_config():
    """Test configuration values."""
    return {
        "jwt_secret": "test_jwt_secret_key_for_testing_only_32bytes!",
        "test_phone": "+34600111222",
        "other_phone": "+5511999999999",
        "admin_phone": "+34999000111",
        "master_code": "maestro-test-2024",
    }


@pytest.fixture
def auth_config(test_config) -> AuthConfig:
    return AuthConfig(
        jwt_secret=test_config["jwt_secret"],
        jwt_expiration_seconds=3600,
        master_code=test_config["master_code"],
        admin_phone=test_config["admin_phone"],
    )


@pytest.fixture
def app_config(auth_config) -> Config:
    return Config(
        auth=auth_config,
        twilio=TwilioConfig(
            account_sid="ACtest",
            auth_token="test_twilio_token",
            phone_number="+15005550006",
        ),
        storage=StorageConfig(backend="memory"),
        environment="test",
    )


# =============================================================================
# Clock and Stores
# =============================================================================

class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def user_store(memory_store) -> UserStore:
    return UserStore(memory_store)


@pytest.fixture
def verification_store(memory_store) -> VerificationStore:
    return VerificationStore(memory_store)


@pytest.fixture
def session_store(memory_store) -> SessionStore:
    return SessionStore(memory_store)


# =============================================================================
# JWT Fixtures
# =============================================================================

@pytest.fixture
def jwt_handler(test_config) -> JWTHandler:
    """Create a JWTHandler with test secret."""
    return JWTHandler(secret_key=test_config["jwt_secret"])


@pytest.fixture
def expired_token(jwt_handler, test_config) -> str:
    """Create an expired access token."""
    return jwt_handler.create_access_token(
        user_id="test-user-id-123",
        phone=test_config["test_phone"],
        expires_in=-1  # Already expired
    )


# =============================================================================
# SMS Notifier
# =============================================================================

class FakeNotifier:
    """Records every code it is asked to send; can be told to fail."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []
        self.fail = False

    def send_verification_code(self, to_phone: str, code: str) -> str:
        if self.fail:
            raise SendFailureError()
        self.sent.append((to_phone, code))
        return f"SM{len(self.sent):032d}"

    def last_code(self, phone: str) -> Optional[str]:
        for to_phone, code in reversed(self.sent):
            if to_phone == phone:
                return code
        return None


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


# =============================================================================
# Engine
# =============================================================================

@pytest.fixture
def engine(auth_config, user_store, verification_store, session_store, jwt_handler, notifier):
    return AuthEngine(
        config=auth_config,
        users=user_store,
        verifications=verification_store,
        sessions=session_store,
        jwt_handler=jwt_handler,
        notifier=notifier,
    )


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def services(app_config, memory_store, notifier):
    """Real service container over the in-memory store."""
    from api.deps import build_services
    return build_services(app_config, store=memory_store, notifier=notifier)


@pytest.fixture
def api_app():
    """Create FastAPI app for testing."""
    from api.main import app
    return app


@pytest.fixture
def api_client(api_app, services) -> Generator[TestClient, None, None]:
    """Synchronous test client wired to the test services."""
    with patch("api.deps.get_services", return_value=services):
        yield TestClient(api_app)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as API endpoint test"
    )

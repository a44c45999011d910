"""
Unit tests for the Access Guard.
"""

import pytest

from servipro.auth import AccessGuard, Role
from servipro.errors import (
    ForbiddenError,
    TokenInvalidError,
    TokenMissingError,
    UnauthenticatedError,
    UserInvalidError,
)


@pytest.fixture
def guard(jwt_handler, user_store):
    return AccessGuard(jwt_handler, user_store)


@pytest.fixture
def standard_user(user_store, test_config):
    return user_store.create_user(test_config["test_phone"])


@pytest.fixture
def admin_user(user_store, test_config):
    return user_store.create_user(test_config["admin_phone"], role=Role.ADMIN)


def bearer(jwt_handler, user):
    return f"Bearer {jwt_handler.create_access_token(user.user_id, user.phone)}"


class TestAuthenticate:

    @pytest.mark.unit
    def test_valid_token(self, guard, jwt_handler, standard_user):
        user = guard.authenticate(bearer(jwt_handler, standard_user))

        assert user.user_id == standard_user.user_id

    @pytest.mark.unit
    @pytest.mark.parametrize("header", [None, "", "Token abc", "bearer abc", "Basic dXNlcjpwYXNz"])
    def test_missing_or_not_bearer(self, guard, header):
        with pytest.raises(TokenMissingError) as exc_info:
            guard.authenticate(header)

        assert exc_info.value.code == "TOKEN_FALTANTE"
        assert exc_info.value.status_code == 401

    @pytest.mark.unit
    @pytest.mark.parametrize("header", ["Bearer ", "Bearer garbage", "Bearer a.b.c"])
    def test_invalid_token(self, guard, header):
        with pytest.raises(TokenInvalidError) as exc_info:
            guard.authenticate(header)

        assert exc_info.value.code == "TOKEN_INVALIDO"

    @pytest.mark.unit
    def test_expired_token(self, guard, expired_token):
        with pytest.raises(TokenInvalidError):
            guard.authenticate(f"Bearer {expired_token}")

    @pytest.mark.unit
    def test_user_gone(self, guard, jwt_handler, test_config):
        token = jwt_handler.create_access_token("deleted-user", test_config["test_phone"])

        with pytest.raises(UserInvalidError) as exc_info:
            guard.authenticate(f"Bearer {token}")

        assert exc_info.value.code == "USUARIO_INVALIDO"
        assert exc_info.value.status_code == 401


class TestRequireRole:

    @pytest.mark.unit
    def test_admin_passes(self, admin_user):
        assert AccessGuard.require_role(admin_user, Role.ADMIN) is admin_user

    @pytest.mark.unit
    def test_standard_forbidden(self, standard_user):
        with pytest.raises(ForbiddenError) as exc_info:
            AccessGuard.require_role(standard_user, Role.ADMIN)

        assert exc_info.value.code == "ACCESO_NO_AUTORIZADO"
        assert exc_info.value.status_code == 403

    @pytest.mark.unit
    def test_no_user(self):
        with pytest.raises(UnauthenticatedError) as exc_info:
            AccessGuard.require_role(None)

        assert exc_info.value.code == "USUARIO_NO_AUTENTICADO"

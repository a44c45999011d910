"""
Unit tests for configuration loading.
"""

import dataclasses

import pytest

from servipro.config import load_config, parse_duration
from servipro.errors import ConfigError

BASE_ENV = {
    "JWT_SECRET": "a-long-enough-secret",
    "JWT_EXPIRATION": "1h",
    "TWILIO_ACCOUNT_SID": "ACtest",
    "TWILIO_AUTH_TOKEN": "token",
    "TWILIO_PHONE_NUMBER": "+15005550006",
    "CODIGO_MAESTRO": "maestro",
    "TELEFONO_ADMIN": "+34999000111",
    "MONGODB_URI": "mongodb://localhost:27017",
}


def env(**overrides):
    merged = {**BASE_ENV, **overrides}
    return {k: v for k, v in merged.items() if v is not None}


class TestParseDuration:

    @pytest.mark.unit
    @pytest.mark.parametrize("value,seconds", [
        ("3600", 3600),
        ("30s", 30),
        ("15m", 900),
        ("1h", 3600),
        ("7d", 604800),
        (" 2h ", 7200),
    ])
    def test_valid(self, value, seconds):
        assert parse_duration(value) == seconds

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["", "h", "1w", "-5", "1.5h"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestLoadConfig:

    @pytest.mark.unit
    def test_defaults(self):
        config = load_config(env())

        assert config.auth.jwt_expiration_seconds == 3600
        assert config.auth.jwt_algorithm == "HS256"
        assert config.auth.verification_ttl_seconds == 300
        assert config.auth.refresh_ttl_seconds == 2592000
        assert config.storage.backend == "mongodb"
        assert config.storage.mongodb_db_name == "servipro"
        assert config.port == 3000
        assert config.environment == "development"
        assert config.log_level == "DEBUG"

    @pytest.mark.unit
    def test_production_log_level(self):
        assert load_config(env(ENVIRONMENT="production")).log_level == "INFO"
        assert load_config(env(ENVIRONMENT="production")).is_production

    @pytest.mark.unit
    def test_immutable(self):
        config = load_config(env())

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.auth.master_code = "changed"

    @pytest.mark.unit
    def test_missing_values_all_reported(self):
        with pytest.raises(ConfigError) as exc_info:
            load_config(env(JWT_SECRET=None, CODIGO_MAESTRO=None, TELEFONO_ADMIN=""))

        problems = exc_info.value.problems
        assert "JWT_SECRET es obligatorio" in problems
        assert "CODIGO_MAESTRO es obligatorio" in problems
        assert "TELEFONO_ADMIN es obligatorio" in problems

    @pytest.mark.unit
    def test_short_secret(self):
        with pytest.raises(ConfigError):
            load_config(env(JWT_SECRET="short"))

    @pytest.mark.unit
    def test_bad_expiration(self):
        with pytest.raises(ConfigError):
            load_config(env(JWT_EXPIRATION="soon"))

    @pytest.mark.unit
    @pytest.mark.parametrize("port", ["0", "-1", "abc"])
    def test_bad_port(self, port):
        with pytest.raises(ConfigError):
            load_config(env(PORT=port))

    @pytest.mark.unit
    def test_mongodb_uri_required_for_mongodb(self):
        with pytest.raises(ConfigError):
            load_config(env(MONGODB_URI=None))

    @pytest.mark.unit
    def test_mongodb_uri_optional_for_memory(self):
        config = load_config(env(MONGODB_URI=None, STORAGE_BACKEND="memory"))

        assert config.storage.backend == "memory"
        assert config.storage.mongodb_uri is None

    @pytest.mark.unit
    def test_unknown_backend(self):
        with pytest.raises(ConfigError):
            load_config(env(STORAGE_BACKEND="redis"))

    @pytest.mark.unit
    def test_json_backend(self, tmp_path):
        config = load_config(env(STORAGE_BACKEND="json", DATA_FILE=str(tmp_path / "d.json")))

        assert config.storage.data_file == str(tmp_path / "d.json")

    @pytest.mark.unit
    @pytest.mark.parametrize("phone", ["admin", "600111222", "+0600111222"])
    def test_admin_phone_must_be_e164(self, phone):
        with pytest.raises(ConfigError) as exc_info:
            load_config(env(TELEFONO_ADMIN=phone))

        assert any("TELEFONO_ADMIN" in p for p in exc_info.value.problems)

    @pytest.mark.unit
    def test_admin_phone_normalized(self):
        config = load_config(env(TELEFONO_ADMIN=" +34 999 000 111 "))

        assert config.auth.admin_phone == "+34999000111"

    @pytest.mark.unit
    @pytest.mark.parametrize("interval", ["0", "-30", "often"])
    def test_bad_purge_interval(self, interval):
        with pytest.raises(ConfigError) as exc_info:
            load_config(env(STORAGE_PURGE_INTERVAL_SECONDS=interval))

        assert any("STORAGE_PURGE_INTERVAL_SECONDS" in p for p in exc_info.value.problems)

    @pytest.mark.unit
    def test_purge_interval(self):
        assert load_config(env(STORAGE_PURGE_INTERVAL_SECONDS="120")).storage.purge_interval_seconds == 120

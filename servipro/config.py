"""Configuration module for the SERVIPRO backend."""

import os
import re
from dataclasses import dataclass
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv()

ENVIRONMENTS = ("development", "production", "test")
STORAGE_BACKENDS = ("mongodb", "json", "memory")

_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """
    Parse a token lifetime into seconds.

    Accepts plain seconds ("3600") or a number with a unit suffix
    ("30s", "15m", "1h", "7d").

    Raises:
        ValueError: If the value is not a positive duration
    """
    match = _DURATION_RE.match(value.strip().lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


@dataclass(frozen=True)
class AuthConfig:
    """Secrets and constants used by the authentication engine."""
    jwt_secret: str
    jwt_expiration_seconds: int
    master_code: str
    admin_phone: str
    jwt_algorithm: str = "HS256"
    verification_ttl_seconds: int = 300
    refresh_ttl_seconds: int = 86400 * 30


@dataclass(frozen=True)
class TwilioConfig:
    """SMS provider credentials."""
    account_sid: str
    auth_token: str
    phone_number: str


@dataclass(frozen=True)
class StorageConfig:
    """Persistence backend selection."""
    backend: str = "mongodb"
    mongodb_uri: Optional[str] = None
    mongodb_db_name: str = "servipro"
    data_file: str = "data/servipro.json"
    purge_interval_seconds: int = 60


@dataclass(frozen=True)
class Config:
    """Main configuration container."""
    auth: AuthConfig
    twilio: TwilioConfig
    storage: StorageConfig
    environment: str = "development"
    log_level: str = "DEBUG"
    log_dir: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """
    Load and validate configuration from environment variables.

    Every problem is collected before failing so a misconfigured deployment
    reports all of them at once.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        Immutable Config

    Raises:
        ConfigError: If a required value is missing or invalid
    """
    from .auth.codes import normalize_phone

    env = os.environ if environ is None else environ
    problems: List[str] = []

    def required(name: str) -> str:
        value = (env.get(name) or "").strip()
        if not value:
            problems.append(f"{name} es obligatorio")
        return value

    environment = env.get("ENVIRONMENT", "development").strip().lower()
    if environment not in ENVIRONMENTS:
        problems.append(f"ENVIRONMENT debe ser uno de {', '.join(ENVIRONMENTS)}")

    port = 3000
    raw_port = env.get("PORT", "3000").strip()
    try:
        port = int(raw_port)
        if port <= 0:
            raise ValueError(raw_port)
    except ValueError:
        problems.append("PORT debe ser un número mayor a cero")

    jwt_secret = required("JWT_SECRET")
    if jwt_secret and len(jwt_secret) < 10:
        problems.append("JWT_SECRET debe tener al menos 10 caracteres")

    jwt_expiration_seconds = 0
    raw_expiration = required("JWT_EXPIRATION")
    if raw_expiration:
        try:
            jwt_expiration_seconds = parse_duration(raw_expiration)
        except ValueError:
            problems.append("JWT_EXPIRATION debe ser una duración válida (ej: 3600, 15m, 1h)")

    twilio = TwilioConfig(
        account_sid=required("TWILIO_ACCOUNT_SID"),
        auth_token=required("TWILIO_AUTH_TOKEN"),
        phone_number=required("TWILIO_PHONE_NUMBER"),
    )

    master_code = required("CODIGO_MAESTRO")
    admin_phone = required("TELEFONO_ADMIN")
    if admin_phone:
        normalized_admin = normalize_phone(admin_phone)
        if normalized_admin is None:
            problems.append("TELEFONO_ADMIN debe tener formato internacional, ej: +34600111222")
        else:
            admin_phone = normalized_admin

    backend = env.get("STORAGE_BACKEND", "mongodb").strip().lower()
    if backend not in STORAGE_BACKENDS:
        problems.append(f"STORAGE_BACKEND debe ser uno de {', '.join(STORAGE_BACKENDS)}")
    mongodb_uri = (env.get("MONGODB_URI") or "").strip() or None
    if backend == "mongodb" and not mongodb_uri:
        problems.append("MONGODB_URI es obligatorio")

    purge_interval = 60
    raw_interval = env.get("STORAGE_PURGE_INTERVAL_SECONDS", "60").strip()
    try:
        purge_interval = int(raw_interval)
        if purge_interval <= 0:
            raise ValueError(raw_interval)
    except ValueError:
        problems.append("STORAGE_PURGE_INTERVAL_SECONDS debe ser un entero mayor a cero")

    if problems:
        raise ConfigError(problems)

    default_level = "INFO" if environment == "production" else "DEBUG"

    return Config(
        auth=AuthConfig(
            jwt_secret=jwt_secret,
            jwt_expiration_seconds=jwt_expiration_seconds,
            master_code=master_code,
            admin_phone=admin_phone,
        ),
        twilio=twilio,
        storage=StorageConfig(
            backend=backend,
            mongodb_uri=mongodb_uri,
            mongodb_db_name=env.get("MONGODB_DB_NAME", "servipro"),
            data_file=env.get("DATA_FILE", "data/servipro.json"),
            purge_interval_seconds=purge_interval,
        ),
        environment=environment,
        log_level=env.get("LOG_LEVEL", default_level).upper(),
        log_dir=env.get("LOG_DIR") or None,
        host=env.get("HOST", "0.0.0.0"),
        port=port,
    )

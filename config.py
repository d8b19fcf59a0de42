"""
config.py
---------
Central configuration module. Loads environment variables from the .env
file and exposes them as typed constants and settings objects.

Database credentials are read by `load_settings()` at startup rather than at
import time, so a missing value stops the process before it serves traffic.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


# ── HTTP ──────────────────────────────────────────────────
APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT: int = int(os.getenv("APP_PORT", "8080"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Cloud SQL ─────────────────────────────────────────────
DEFAULT_SOCKET_DIR: str = "/cloudsql"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Connection parameters for the PostgreSQL server.

    Attributes:
        host: Hostname, IP address or Unix socket directory.
        name: Database name.
        user: Login role.
        password: Login password.
        port: TCP port (ignored by libpq for socket directories).
    """
    host: str
    name: str
    user: str
    password: str = field(repr=False)
    port: int = 5432

    def connect_kwargs(self) -> dict:
        """Keyword arguments accepted by `psycopg2.connect`."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
        }


@dataclass(frozen=True)
class PoolSettings:
    """
    Tuning for the connection pool. Durations are in seconds.

    Attributes:
        max_size: Maximum number of connections checked out at once.
        min_idle: Connections opened eagerly and kept in the pool.
        acquire_timeout: How long a caller waits for a free slot.
        idle_timeout: Idle connections older than this are replaced on checkout.
        max_lifetime: Connections older than this are replaced on checkout.
    """
    max_size: int = 5
    min_idle: int = 5
    acquire_timeout: float = 10.0
    idle_timeout: float = 600.0
    max_lifetime: float = 1800.0

    def __post_init__(self):
        if self.max_size < 1:
            raise ConfigurationError("Pool max_size must be at least 1.")
        if not 0 <= self.min_idle <= self.max_size:
            raise ConfigurationError(
                f"Pool min_idle must be between 0 and max_size ({self.max_size})."
            )
        for name in ("acquire_timeout", "idle_timeout", "max_lifetime"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"Pool {name} must not be negative.")

    @classmethod
    def from_env(cls) -> "PoolSettings":
        """Build pool tuning from POOL_* variables, falling back to defaults."""
        return cls(
            max_size=_env_int("POOL_MAX_SIZE", cls.max_size),
            min_idle=_env_int("POOL_MIN_IDLE", cls.min_idle),
            acquire_timeout=_env_float("POOL_ACQUIRE_TIMEOUT", cls.acquire_timeout),
            idle_timeout=_env_float("POOL_IDLE_TIMEOUT", cls.idle_timeout),
            max_lifetime=_env_float("POOL_MAX_LIFETIME", cls.max_lifetime),
        )


def load_settings() -> DatabaseSettings:
    """
    Read database settings from the environment.

    Either DB_HOST or INSTANCE_CONNECTION_NAME must be set. With only the
    instance name, the host is the Cloud SQL socket directory for it.

    Raises:
        ConfigurationError: If a required variable is missing or empty.
    """
    values = {name: os.getenv(name, "").strip() for name in ("DB_USER", "DB_PASS", "DB_NAME")}
    missing = [name for name, value in values.items() if not value]

    host = os.getenv("DB_HOST", "").strip()
    instance = os.getenv("INSTANCE_CONNECTION_NAME", "").strip()
    if not host and instance:
        socket_dir = os.getenv("DB_SOCKET_DIR", DEFAULT_SOCKET_DIR).rstrip("/")
        host = f"{socket_dir}/{instance}"
    if not host:
        missing.append("DB_HOST or INSTANCE_CONNECTION_NAME")

    if missing:
        raise ConfigurationError(
            "Missing required environment variables: " + ", ".join(missing)
        )

    return DatabaseSettings(
        host=host,
        name=values["DB_NAME"],
        user=values["DB_USER"],
        password=values["DB_PASS"],
        port=_env_int("DB_PORT", 5432),
    )

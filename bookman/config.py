"""
Bookman Web: Application Configuration
======================================

What:  Settings record loaded from BOOKMAN_* environment variables.
How:   Pydantic Settings reads the environment, applies defaults for unset
       variables, and freezes the result. One instance per process.
Who:   Built by bookman.main at startup and handed to the pool provider,
       middleware, and routes through the application context.

Core variables (each has a fixed default):

    BOOKMAN_PASSWORD_PATH   file holding the database password
    BOOKMAN_DATABASE_DSN    libpq-style connection string (no password)
    BOOKMAN_HTTP_ADDRESS    listen address, "host:port" or ":port"

The DSN is not validated here; bookman.database parses it when the pool is
created.
"""

from pathlib import Path
from typing import Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from bookman.exceptions import ConfigurationError

# Assets shipped with the package; served by the catch-all static route.
DEFAULT_STATIC_DIR = str(Path(__file__).resolve().parent / "public")

# Favicon is a data: URL, hence the img-src exception.
DEFAULT_CONTENT_SECURITY_POLICY = "default-src 'self'; img-src 'self' data:"


class Settings(BaseSettings):
    """
    Immutable application settings.

    The three core fields mirror the deployment contract (password file, DSN,
    listen address). The rest are ambient knobs for logging, pool sizing, and
    static assets.
    """

    # ── Database ──────────────────────────────────────────────────────────
    password_path: str = Field(
        default="/run/secrets/bookman_web_password",
        description="Path to a file containing the database password",
    )
    database_dsn: str = Field(
        default="host=db dbname=bookman user=bookman_web",
        description="Database connection string, without the password",
    )

    # Pool sizing. Total connections never exceed pool_size + max_overflow.
    db_pool_size: int = Field(default=5, ge=1, le=100)
    db_max_overflow: int = Field(default=5, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # ── Server ────────────────────────────────────────────────────────────
    http_address: str = Field(
        default=":3000",
        description="Host and port to listen on; an empty host means all interfaces",
    )
    static_dir: str = Field(default=DEFAULT_STATIC_DIR)
    content_security_policy: str = Field(default=DEFAULT_CONTENT_SECURITY_POLICY)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    model_config = {
        "env_prefix": "BOOKMAN_",
        "case_sensitive": False,
        "frozen": True,
    }

    @field_validator("password_path", "database_dsn", "http_address", mode="before")
    @classmethod
    def empty_means_default(cls, v, info):
        """An empty variable behaves like an unset one."""
        if isinstance(v, str) and v == "":
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    def listen_address(self) -> Tuple[str, int]:
        """
        Split http_address into (host, port).

        ":3000" listens on every interface. Raises ConfigurationError when the
        address has no port or the port is not a number in 1..65535.
        """
        host, sep, port = self.http_address.rpartition(":")
        if not sep:
            raise ConfigurationError(
                f"BOOKMAN_HTTP_ADDRESS '{self.http_address}' has no port",
                context={"http_address": self.http_address},
            )
        try:
            port_number = int(port)
        except ValueError:
            port_number = 0
        if not 0 < port_number < 65536:
            raise ConfigurationError(
                f"BOOKMAN_HTTP_ADDRESS '{self.http_address}' has an invalid port",
                context={"http_address": self.http_address},
            )
        # "[::1]:3000" style hosts
        host = host.strip("[]")
        return host or "0.0.0.0", port_number


def load_settings() -> Settings:
    """Build settings from the current process environment."""
    return Settings()

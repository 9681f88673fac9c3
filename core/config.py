"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for SecureAuth happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. db_host -> DB_HOST). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Production mode refuses to start without
      real database credentials; local development falls back to SQLite.

Database URL resolution (first match wins):
  1. DATABASE_URL -- any SQLAlchemy URL, used verbatim.
  2. DB_HOST set  -- MySQL via PyMySQL, built from DB_HOST / DB_PORT /
                     DB_NAME / DB_USER / DB_PASS / DB_CHARSET.
  3. otherwise    -- SQLite file secureauth.db at the repository root.

Layer rule: core/ may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

logger = logging.getLogger("secureauth.config")

_DEFAULT_SQLITE_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'secureauth.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # "production" switches on the credential check in the validator below.
    environment: str = "development"
    log_level: str = "INFO"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = ""
    db_host: str = ""
    db_name: str = "secure_authentication_system"
    db_user: str = "root"
    db_pass: str = ""
    db_port: int = 3306
    db_charset: str = "utf8mb4"
    # The users table is assumed to exist in production; create it locally.
    auto_create_schema: bool = True

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 12
    session_cookie_name: str = "session_id"
    session_ttl_seconds: int = 1440
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        """bcrypt accepts cost factors 4..31. Below 10 is only sane in tests."""
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @model_validator(mode="after")
    def validate_database(self) -> "Settings":
        """Refuse to start in production without real database credentials.

        Local development (the default) silently uses SQLite. A production
        deployment that forgot DB_HOST would otherwise write users to a
        throwaway file inside the container.
        """
        if self.environment == "production" and not (self.database_url or self.db_host):
            raise ValueError(
                "Database credentials are required in production mode. "
                "Set DATABASE_URL or DB_HOST/DB_NAME/DB_USER/DB_PASS in your environment."
            )
        if self.environment == "production" and not self.secure_cookies:
            logger.warning("SECURE_COOKIES is off in production -- session cookies will be sent over plain HTTP.")
        return self

    def resolved_database_url(self) -> str | URL:
        """Return the SQLAlchemy URL this deployment should connect to."""
        if self.database_url:
            return self.database_url
        if self.db_host:
            return URL.create(
                "mysql+pymysql",
                username=self.db_user,
                password=self.db_pass or None,
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
                query={"charset": self.db_charset},
            )
        return _DEFAULT_SQLITE_URL


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()

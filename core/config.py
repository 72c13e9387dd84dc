"""
core/config.py -- Centralized service configuration via pydantic-settings.

All environment variable reads for the SSO service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead, or receive the values through constructor arguments.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. token_ttl_seconds -> TOKEN_TTL_SECONDS).

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. A bad TTL or bcrypt cost is a hard startup failure, never a
      per-request surprise.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sso.config")

# Relative to the working directory the service is started from.
_DEFAULT_STORAGE_URL = "sqlite:///storage/sso.db"


class Settings(BaseSettings):
    """Service settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    env: Literal["local", "dev", "prod"] = "local"
    host: str = "127.0.0.1"
    port: int = 44044

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    storage_url: str = _DEFAULT_STORAGE_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Fixed for the lifetime of the process; every token gets the same TTL.
    token_ttl_seconds: int = 3600
    # Per-request deadline applied by the transport around each operation.
    request_timeout_seconds: float = 5.0
    bcrypt_rounds: int = 12

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        if self.token_ttl_seconds <= 0:
            raise ValueError("TOKEN_TTL_SECONDS must be a positive number of seconds.")
        if self.request_timeout_seconds <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive.")
        # bcrypt.gensalt() only accepts 4..31
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if self.env == "prod" and self.bcrypt_rounds < 10:
            logger.warning("BCRYPT_ROUNDS=%d is below the recommended production cost", self.bcrypt_rounds)
        return self

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.token_ttl_seconds)


@lru_cache
def get_settings() -> Settings:
    """Return the service Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()

"""
core/config.py -- Settings for the users API, read once from the environment.

Every tunable the auth core needs (signing secret, bcrypt cost, token and
cache lifetimes, database URL, login rate) is a field on Settings. Nothing
else in the tree reads os.environ.

Field names map to upper-case env vars (bcrypt_rounds -> BCRYPT_ROUNDS); a
.env file in the working directory is also honored. get_settings() builds the
object on first use and memoizes it with lru_cache.

Only api/main.py (lifespan) and main.py (CLI) call get_settings(). The hasher,
token issuer, cache and store take plain constructor values, so tests build
independent instances without touching the environment.

Secret policy:
  [S1] SECRET_KEY must be at least 32 characters; HS256 is only as strong as
       the key's entropy.

  [S2] Without DEBUG=true a missing SECRET_KEY stops startup. With DEBUG=true
       a random key is generated, and tokens die with the process.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or cache/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("usersapi.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'usersapi.db'}"


class Settings(BaseSettings):
    """Runtime configuration for the API and the CLI.

    Every field has a default except the secret, which validate_secret_key()
    fills in or rejects. Init kwargs override the environment.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    token_expire_seconds: int = 3600
    # bcrypt work factor (log2 of the key-expansion rounds). 12 costs roughly
    # 250ms per hash on commodity hardware; tests drop it to 4.
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Identity cache
    # ------------------------------------------------------------------

    identity_cache_ttl: int = 60
    cache_purge_interval: int = 300

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @field_validator("token_expire_seconds", "identity_cache_ttl", "cache_purge_interval")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Durations must be positive (seconds).")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Generate a throwaway key under DEBUG, otherwise require one [S2]; check length [S1]."""
        if not self.secret_key:
            if not self.debug:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set it in the environment or .env, or set DEBUG=true for a throwaway key."
                )
            self.secret_key = secrets.token_hex(32)
            logger.warning("SECRET_KEY not set; generated one for this process. Issued tokens end with it.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first call.

    Tests that change the environment afterwards must call
    get_settings.cache_clear().
    """
    return Settings()

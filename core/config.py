"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads for trustgate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from TRUSTGATE_* environment
      variables and an optional .env file. Field names map to env var names
      (e.g. pbkdf2_iterations -> TRUSTGATE_PBKDF2_ITERATIONS). Type coercion
      and range validation are built in.

  @model_validator(mode="after"): Cross-field checks that run once all fields
      are resolved (file names must stay inside secrets_dir).

Security notes:
  [S1] Secrets are never configured here. Settings only says WHERE the secret
       files live; core/secret_store.py reads them. Keeping key material out
       of the Settings object means it can be logged or dumped safely.

  [S2] pbkdf2_iterations below 100_000 is rejected outright. The iteration
       count travels inside every stored hash, so raising it later does not
       break verification of older records.

  [S3] debug=True attaches diagnostic detail (timestamps, codec messages,
       raise-site locations) to serialized errors. Never enable in production.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("trustgate.config")

MIN_PBKDF2_ITERATIONS = 100_000


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRUSTGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False

    # ------------------------------------------------------------------
    # Secret files [S1]
    # ------------------------------------------------------------------

    secrets_dir: Path = Path("/app/backend/.secrets")
    csrf_secret_file: str = "csrf.txt"
    jwt_secret_file: str = "jwt.txt"
    # Secrets are short line-terminated text; anything larger is a
    # misprovisioned file, not a key.
    max_secret_bytes: int = Field(default=1024, gt=0)

    # ------------------------------------------------------------------
    # CSRF
    # ------------------------------------------------------------------

    csrf_token_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)

    # ------------------------------------------------------------------
    # JWT
    # ------------------------------------------------------------------

    jwt_ttl_seconds: int = Field(default=7 * 24 * 60 * 60, gt=0)
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"

    # ------------------------------------------------------------------
    # Passwords [S2]
    # ------------------------------------------------------------------

    password_scheme: Literal["pbkdf2_sha256", "argon2id"] = "pbkdf2_sha256"
    pbkdf2_iterations: int = Field(default=MIN_PBKDF2_ITERATIONS, ge=MIN_PBKDF2_ITERATIONS)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_files(self) -> "Settings":
        """Reject secret file names that escape secrets_dir.

        The file names are joined onto secrets_dir by the secret store. A name
        with a path separator or a parent reference would let configuration
        point the store at an arbitrary file.
        """
        for field_name in ("csrf_secret_file", "jwt_secret_file"):
            value = getattr(self, field_name)
            if not value or Path(value).name != value or value in (".", ".."):
                raise ValueError(f"{field_name} must be a plain file name inside secrets_dir.")
        if self.debug:
            logger.warning("WARNING: debug mode is on. Error detail will be attached to serialized errors.")
        return self

    def secret_paths(self) -> dict[str, Path]:
        """Return the backing file for each named secret."""
        return {
            "csrf_secret": self.secrets_dir / self.csrf_secret_file,
            "jwt_secret": self.secrets_dir / self.jwt_secret_file,
        }


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings()
    directly, except tests that need an isolated configuration.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()

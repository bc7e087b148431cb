"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the bookstore API happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_key -> JWT_KEY). Type coercion and validation are built in.

  Explicit injection: get_settings() is called once, by api.main.create_app().
      The token-related subset is copied into auth.tokens.TokenConfig and handed
      to the TokenIssuer and AccessGuard constructors. Nothing in auth/ reads
      settings on its own.

Security notes:
  JWT_KEY and JWT_ISSUER are required and have no defaults. A missing value
  fails Settings() with a ValidationError, so create_app() never returns and the
  process refuses to serve. Keys shorter than 32 chars are rejected outright.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or catalog/.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_KEY_LENGTH = 32
BCRYPT_MAX_BYTES = 72

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'bookstore.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    jwt_key and jwt_issuer are required. Everything else has a default so a
    minimal deployment needs only those two variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Token signing
    # ------------------------------------------------------------------

    jwt_key: str
    jwt_issuer: str
    # Empty string means "use jwt_issuer". Tokens have always carried the
    # issuer in both iss and aud; a separate audience is opt-in.
    jwt_audience: str = ""
    validate_issuer: bool = True
    validate_audience: bool = True
    token_expire_seconds: int = 5 * 60 * 60

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    # Demo identities (admin, Customer1, Customer2) are seeded only when set.
    demo_user_password: str = ""

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_key")
    @classmethod
    def validate_jwt_key(cls, value: str) -> str:
        """Reject signing keys too short for HS256."""
        if len(value) < MIN_KEY_LENGTH:
            raise ValueError(f"JWT_KEY must be at least {MIN_KEY_LENGTH} characters.")
        return value

    @field_validator("jwt_issuer")
    @classmethod
    def validate_jwt_issuer(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("JWT_ISSUER must not be blank.")
        return value

    @field_validator("token_expire_seconds")
    @classmethod
    def validate_expiry(cls, value: int) -> int:
        # Expiry must land strictly after issued-at.
        if value <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        return value

    @field_validator("demo_user_password")
    @classmethod
    def validate_demo_password(cls, value: str) -> str:
        # bcrypt refuses secrets longer than 72 bytes.
        if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"DEMO_USER_PASSWORD must be at most {BCRYPT_MAX_BYTES} bytes.")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    Raises pydantic.ValidationError when JWT_KEY or JWT_ISSUER is missing or
    invalid; create_app() lets that propagate so startup fails loudly.

    In tests: build Settings(...) explicitly and pass it to create_app()
    rather than relying on the environment.
    """
    return Settings()

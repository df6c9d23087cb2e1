"""
device_auth.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide the signing secret from repr/logging.
- Refuse unsafe signing configuration outside dev/test.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-secret-change-me-0123456789abcdef"


class Settings(BaseSettings):
    """
    Single settings object passed by construction into every component.
    Env vars use the `DEVICE_AUTH_` prefix (e.g. DEVICE_AUTH_JWT_SECRET).
    """

    model_config = SettingsConfigDict(env_prefix="DEVICE_AUTH_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "device-auth"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Tokens
    jwt_alg: str = "HS256"
    jwt_secret: str = Field(default=DEV_JWT_SECRET, repr=False)
    token_ttl_seconds: int = Field(default=3600, ge=1)

    # Passwords (bcrypt cost factor)
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    # Devices
    device_quota: int = Field(default=5, ge=1)
    device_binding_ttl_days: int = Field(default=7, ge=1)
    # 0 disables the periodic expiry sweep.
    device_sweep_interval_seconds: int = Field(default=24 * 60 * 60, ge=0)

    # Each storage step gets its own deadline.
    storage_timeout_seconds: float = Field(default=3.0, gt=0)

    # Route names that require a valid bearer token.
    protected_operations: frozenset[str] = frozenset({"check_token"})

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./device_auth.db"

    @model_validator(mode="after")
    def _check_signing(self) -> Settings:
        if not self.jwt_alg.startswith("HS"):
            raise ValueError("jwt_alg must be an HMAC algorithm (HS256/HS384/HS512)")
        if self.env == "prod":
            if self.jwt_secret == DEV_JWT_SECRET:
                raise ValueError("DEVICE_AUTH_JWT_SECRET must be set in prod")
            if len(self.jwt_secret) < 32:
                raise ValueError("DEVICE_AUTH_JWT_SECRET must be at least 32 characters")
        return self

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.token_ttl_seconds)

    @property
    def device_binding_ttl(self) -> timedelta:
        return timedelta(days=self.device_binding_ttl_days)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The signing secret is read once here and handed to TokenCodec at construction;
# no other module reads it from the environment.

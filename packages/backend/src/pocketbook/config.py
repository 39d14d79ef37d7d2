"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with POCKETBOOK_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: pydantic-settings auto-loads from environment, validates types,
provides defaults. Realtime knobs (backplane, signed tokens, auth timeout)
live here next to the server settings.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

_DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """All app configuration. Set via POCKETBOOK_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3100

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
    ]

    # Realtime fan-out
    # "memory" keeps channels in-process; "redis" publishes through Redis
    # so any worker process can reach any user's sockets.
    realtime_backplane: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    auth_timeout_seconds: float = 0  # 0 = unauthenticated sockets may idle forever

    # Auth
    require_signed_token: bool = False
    jwt_secret: str = _DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Shared secret for the internal notify API (x-api-key header)
    internal_api_key: str = ""

    model_config = {"env_prefix": "POCKETBOOK_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if self.environment == "development":
            return self
        if self.require_signed_token and self.jwt_secret == _DEFAULT_JWT_SECRET:
            raise ValueError(
                "POCKETBOOK_JWT_SECRET must be set to a secure value when "
                "signed tokens are required. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        if not self.internal_api_key:
            raise ValueError(
                "POCKETBOOK_INTERNAL_API_KEY must be set in non-development "
                "environments so only the API layer can push notifications."
            )
        return self


# Singleton — import this everywhere
settings = Settings()

"""Centralised application settings loaded from environment / .env file."""

from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Record store
    database_url: str = "sqlite+aiosqlite:///./cab_dispatch.db"

    # Redis (only used by the "redis" lock backend)
    redis_url: str = "redis://localhost:6379/0"

    # Dispatch locks
    lock_backend: Literal["local", "redis"] = "local"
    lock_ttl_seconds: int = 30
    lock_timeout_seconds: float = 5.0

    # Dispatch engine
    dispatch_random_seed: Optional[int] = None  # None -> unseeded tie-break

    # API
    rate_limit: str = "100/minute"

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()

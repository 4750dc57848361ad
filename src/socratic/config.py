"""Application settings via pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with SOCRATIC_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="SOCRATIC_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Storage ---
    storage_backend: Literal["sql", "memory"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./socratic.db"
    database_pool_size: int = 10
    create_schema: bool = True
    seed_catalog: bool = True

    # --- Redis (optional, game event broadcast) ---
    redis_url: str = ""

    # --- JWT (tokens issued by the hosted auth provider) ---
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"
    jwt_access_token_expire_minutes: int = 60

    # --- Tutor endpoint ---
    tutor_url: str = "http://localhost:54321/functions/v1/multiagent-chat"
    tutor_api_key: str = ""
    tutor_model: str = "gpt-4o-mini"
    tutor_timeout_seconds: float = 30.0
    max_message_length: int = 4000

    # --- Leaderboard ---
    leaderboard_default_limit: int = 10
    leaderboard_max_limit: int = 100


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

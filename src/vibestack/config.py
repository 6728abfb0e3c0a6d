"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with VIBE_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="VIBE_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    app_url: str = "http://localhost:3000"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8081"]
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Hosted platform ---
    supabase_url: str = "http://localhost:54321"
    supabase_key: str = ""

    # --- Shared counters (empty = process-local) ---
    redis_url: str = ""

    # --- Auth ---
    password_min_length: int = 8
    password_reset_cooldown_seconds: int = 60
    account_lockout_threshold: int = 10
    account_lockout_duration_minutes: int = 15

    # --- Domain limits ---
    max_habits_per_user: int = 50
    user_search_limit: int = 20
    activity_feed_limit: int = 50
    recent_achievements_limit: int = 5


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

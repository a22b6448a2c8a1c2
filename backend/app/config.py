from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )
    
    # Database
    database_url: str = "sqlite+aiosqlite:///./job_tracker.db"
    
    # Shared secret for the HTTP triggers (?secret=...)
    api_secret: Optional[str] = None
    
    # Upstream ATS APIs
    http_timeout_seconds: float = 15
    greenhouse_max_jobs: int = 100
    
    # Collection cycle
    collector_delay_seconds: float = 2.0  # pause between employers
    stale_after_days: int = 60
    write_batch_size: int = 10
    count_update_max_attempts: int = 3
    count_update_backoff_seconds: float = 1.0  # delay = base * 2^attempt
    
    # App
    debug: bool = False


settings = Settings()


def validate_collector_settings(config: Settings) -> None:
    """
    Fail fast on settings the collection cycle cannot run without.
    
    Raises:
        ConfigurationError: database URL missing or a limit is not positive
    """
    if not config.database_url or not config.database_url.strip():
        raise ConfigurationError("DATABASE_URL is not configured")
    
    for name in ("http_timeout_seconds", "write_batch_size", "stale_after_days", "count_update_max_attempts"):
        if getattr(config, name) <= 0:
            raise ConfigurationError(f"{name.upper()} must be positive")
    
    if config.collector_delay_seconds < 0:
        raise ConfigurationError("COLLECTOR_DELAY_SECONDS cannot be negative")

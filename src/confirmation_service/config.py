"""Application configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from confirmation_service.errors import FatalStartupError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_name: str = "lab-confirmation-sync"
    app_env: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # API Settings
    # -------------------------------------------------------------------------
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4

    # -------------------------------------------------------------------------
    # Lab Interface Integration
    # -------------------------------------------------------------------------
    lab_interface_base_url: str = ""
    lab_interface_username: str = ""
    lab_interface_password: str = ""
    lab_interface_timeout: int = 30

    def lab_interface_credentials(self) -> tuple[str, str, str]:
        """Return (base_url, username, password) or fail before any sync work starts."""
        missing = [
            name
            for name, value in (
                ("LAB_INTERFACE_BASE_URL", self.lab_interface_base_url),
                ("LAB_INTERFACE_USERNAME", self.lab_interface_username),
                ("LAB_INTERFACE_PASSWORD", self.lab_interface_password),
            )
            if not value
        ]
        if missing:
            raise FatalStartupError(
                f"Lab interface configuration incomplete: {', '.join(missing)} not set"
            )
        return (
            self.lab_interface_base_url.rstrip("/"),
            self.lab_interface_username,
            self.lab_interface_password,
        )

    # -------------------------------------------------------------------------
    # PostgreSQL Database
    # -------------------------------------------------------------------------
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "labsync"
    postgres_password: str = ""
    postgres_db: str = "deployment_tracker"

    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_recycle: int = 1800

    @property
    def database_url(self) -> str:
        """Construct PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        """Construct synchronous PostgreSQL connection URL (for Alembic)."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # -------------------------------------------------------------------------
    # Redis
    # -------------------------------------------------------------------------
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0

    @property
    def redis_url(self) -> str:
        """Construct Redis connection URL."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # -------------------------------------------------------------------------
    # Celery
    # -------------------------------------------------------------------------
    celery_broker_url: str = ""
    celery_result_backend: str = ""

    @property
    def celery_broker(self) -> str:
        """Get Celery broker URL, defaulting to Redis URL."""
        return self.celery_broker_url or self.redis_url

    @property
    def celery_backend(self) -> str:
        """Get Celery result backend URL, defaulting to Redis URL."""
        return self.celery_result_backend or self.redis_url

    # -------------------------------------------------------------------------
    # Confirmation Sync Settings
    # -------------------------------------------------------------------------
    confirmation_sync_concurrency: int = Field(default=3, ge=1)
    confirmation_sync_max_attempts: int = Field(default=3, ge=1)
    confirmation_sync_retry_delay_seconds: float = 1.0
    confirmation_sync_chunk_delay_seconds: float = 0.5
    confirmation_sync_batch_delay_seconds: float = 1.0
    confirmation_sync_max_batches: int = Field(default=10, ge=1)
    sync_confirmations_interval_minutes: int = 15
    last_sync_run_ttl_seconds: int = 86400


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

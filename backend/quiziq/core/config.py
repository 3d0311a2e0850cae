"""
Centralized configuration management with Pydantic Settings.
All environment variables are validated and typed.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "QuizIQ API"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(default="development", pattern="^(development|staging|production|test)$")

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database (async SQLAlchemy URL; postgresql:// is upgraded to asyncpg)
    database_url: str
    database_pool_size: int = 20
    database_max_overflow: int = 10
    database_echo: bool = False

    # Redis (shared rate-limit counters for multi-instance deployments)
    redis_url: Optional[RedisDsn] = None

    # Security - tokens are issued elsewhere, we only verify them
    secret_key: str = Field(min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 2
    auth_cookie_name: str = "auth-token"

    # Dashboard CORS - stored as comma-separated string to avoid JSON parsing issues.
    # The collector endpoint is always open to any origin.
    allowed_origins_str: str = Field(default="http://localhost:3000", alias="ALLOWED_ORIGINS")

    @property
    def allowed_origins(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins_str.split(",") if origin.strip()]

    # Collection rate limiting
    rate_limit_backend: str = Field(default="memory", pattern="^(memory|redis)$")
    collect_window_ms: int = 1000
    rate_limit_cleanup_interval: int = 60  # seconds

    # Origin matching: substring containment unless strict
    strict_origin_matching: bool = False

    # Defaults for the singleton policy row
    default_max_trackers_per_user: int = 10
    default_max_collect_rps_per_origin: int = 10
    default_retention_days: int = 365

    # External PDF rendering service (accepts HTML, returns PDF bytes)
    pdf_renderer_url: Optional[str] = None
    pdf_renderer_timeout: float = 30.0

    # Observability
    sentry_dsn: Optional[str] = None
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "EduAccess"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = ""  # Loaded from environment, validated in model_validator
    database_echo: bool = False

    # Security
    secret_key: str = ""  # Loaded from environment, validated in model_validator
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 480  # 8 hours

    # CORS - comma-separated list of allowed origins
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Authorization
    superuser_role: str = "admin"  # Only role granted implicit access by the resolver fallbacks
    authorization_timeout_seconds: float = 5.0

    # Soft delete
    soft_delete_retention_days: int = 30  # Restore window
    soft_delete_purge_after_days: int = 365  # Default age for permanent removal

    # Menu
    default_menu_group: str = "other"

    # Redis Cache
    redis_enabled: bool = True  # Enable/disable caching
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None

    # Cache TTL (Time-To-Live) in seconds
    cache_ttl_permissions: int = 300  # 5 minutes

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required fields and authorization limits"""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set in environment or .env file.")
        if not self.secret_key:
            raise ValueError("SECRET_KEY is required. Generate with: openssl rand -hex 32")
        if not self.superuser_role.strip():
            raise ValueError("SUPERUSER_ROLE must not be empty")
        if self.authorization_timeout_seconds <= 0:
            raise ValueError("AUTHORIZATION_TIMEOUT_SECONDS must be positive")
        if self.soft_delete_retention_days < 0:
            raise ValueError("SOFT_DELETE_RETENTION_DAYS must not be negative")
        if self.soft_delete_purge_after_days < self.soft_delete_retention_days:
            raise ValueError(
                "SOFT_DELETE_PURGE_AFTER_DAYS must not be shorter than SOFT_DELETE_RETENTION_DAYS"
            )
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()

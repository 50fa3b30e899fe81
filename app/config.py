"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    environment: str = Field(default="development", description="Environment: development, staging, production")
    debug: bool = Field(default=False, description="Debug mode")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./messaging.db",
        description="Async database connection URL"
    )
    database_url_sync: str = Field(
        default="sqlite:///./messaging.db",
        description="Sync database connection URL for Alembic"
    )

    # Redis
    redis_url: str = Field(default="", description="Redis connection URL (empty disables the cache)")
    redis_password: str = Field(default="", description="Redis password")

    # Security
    jwt_secret: str = Field(
        default="development-secret-change-me-please-32chars",
        min_length=32,
        description="JWT secret key (min 32 chars)"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_expiration_hours: int = Field(default=24, description="JWT expiration time in hours")

    # CORS
    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins"
    )

    # Rate Limiting
    rate_limit_messages_per_minute: int = Field(default=30, description="Messages a client may send per minute")

    # WebSocket
    ws_heartbeat_interval: int = Field(default=30, description="WebSocket heartbeat interval in seconds")
    presence_refresh_interval: int = Field(default=30, description="Seconds between last-seen refreshes for connected users")

    # Messaging rules
    message_max_length: int = Field(default=1000, description="Maximum message length after trimming")
    message_edit_window_hours: int = Field(default=24, description="Hours after creation during which a message may be edited")
    emoji_max_length: int = Field(default=10, description="Maximum length of content auto-classified as emoji")
    status_max_length: int = Field(default=139, description="Maximum length of a user's status text")
    search_min_length: int = Field(default=2, description="Minimum search query length")
    search_max_length: int = Field(default=50, description="Maximum search query length")

    # Pagination
    default_page_size: int = Field(default=50, description="Default number of messages per page")
    max_page_size: int = Field(default=100, description="Maximum number of messages per page")
    default_conversations_limit: int = Field(default=20, description="Default number of conversations listed")

    # Cache TTL (in seconds)
    cache_user_ttl: int = Field(default=600, description="User cache TTL in seconds")
    cache_presence_ttl: int = Field(default=300, description="Presence cache TTL in seconds")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")

    def get_allowed_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


# Global settings instance
settings = Settings()

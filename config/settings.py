"""
Configuration settings for the CreatorFlow sync service.
All sensitive values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "CreatorFlow Sync"
    debug: bool = Field(default=False)
    environment: str = Field(default="production")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Database (hosted PostgreSQL)
    database_url: str = Field(default="")
    database_echo: bool = Field(default=False)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=1800)

    # Dates are stored as naive local time in this zone
    timezone: str = Field(default="UTC")

    # Sync behaviour
    # create_only: only failed inserts are undone locally
    # all: failed updates and deletes are undone as well
    rollback_policy: Literal["create_only", "all"] = Field(default="create_only")
    cascade_remote_deletes: bool = Field(default=False)

    # Per-owner stores kept in memory before the least recently used is closed
    max_open_stores: int = Field(default=100)

    # Dashboard
    upcoming_deadlines_limit: int = Field(default=5)
    recent_projects_limit: int = Field(default=3)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings

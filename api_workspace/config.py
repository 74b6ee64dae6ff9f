"""
Application settings for the API Workspace.

Settings are read from ``API_WORKSPACE_*`` environment variables once at
startup; every field has a default suitable for a local single-user install.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime configuration."""

    database_url: str = "sqlite:///./api_workspace.db"
    storage_key: str = "api-workspace-storage"
    max_history_items: int = Field(default=100, ge=1)
    request_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build settings from the process environment."""
    return Settings(
        database_url=os.getenv("API_WORKSPACE_DATABASE_URL", "sqlite:///./api_workspace.db"),
        storage_key=os.getenv("API_WORKSPACE_STORAGE_KEY", "api-workspace-storage"),
        max_history_items=int(os.getenv("API_WORKSPACE_MAX_HISTORY_ITEMS", "100")),
        request_timeout=float(os.getenv("API_WORKSPACE_REQUEST_TIMEOUT", "30.0")),
        log_level=os.getenv("API_WORKSPACE_LOG_LEVEL", "INFO"),
    )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return load_settings()

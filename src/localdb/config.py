"""
localdb Configuration Module.

Store behaviour and logging settings.
Uses pydantic-settings for validation and type safety.
"""

import logging
import sys
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Row store behaviour."""

    model_config = SettingsConfigDict(env_prefix="LOCALDB_")

    seed_demo_data: bool = Field(default=False, description="Load the demo dataset into new stores")
    default_conflict_key: str = Field(default="id", description="Column used by upsert when on_conflict is not given")
    isolate_listener_errors: bool = Field(
        default=True,
        description="If true, exceptions raised by change listeners are logged and swallowed instead of reaching the writer.",
    )
    channel_suffix: str = Field(default="-changes", description="Suffix appended to a table name to form its change channel")

    def channel_for(self, table: str) -> str:
        """Return the change channel name for a table."""
        return f"{table}{self.channel_suffix}"


class Settings(BaseSettings):
    """Main settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: Literal["development", "test", "production"] = "development"
    app_log_level: str = "INFO"

    store: StoreSettings = Field(default_factory=StoreSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure standard logging for processes embedding the store."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.app_log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

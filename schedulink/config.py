"""Application configuration using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SCHEDULINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Schedulink"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    api_prefix: str = "/api"

    # Conflict detection
    # Storage failures inside the pre-write conflict check let the write proceed.
    conflict_check_fail_open: bool = True

    # Broadcasts
    broadcast_history_size: int = 100

    # Seed a handful of venues/resources at startup
    seed_sample_data: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()

"""Environment-driven configuration for the Journal API.

Every knob the service reads lives on ``AppSettings``. Values come from the
process environment first, then ``.env``/``.env.local`` files, then the
defaults below, so a fresh checkout boots without any setup.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Journal"
    APP_ENV: str = "dev"
    HOST: str = "0.0.0.0"
    PORT: int = 8089

    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    # Empty means "SQLite file under DATA_DIR".
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = True

    BASIC_AUTH_REALM: str = "journal"
    # Signs the bearer tokens handed out by POST /api/tokens.
    JWT_SECRET: str = "dev-insecure-secret-change-me"
    JWT_ACCESS_TTL_MIN: int = 60

    ENTRIES_PER_PAGE: int = 10
    ENTRIES_MAX_PER_PAGE: int = 100

    ALLOWED_ORIGINS: list[str] = Field(default_factory=list)

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'journal.db'}"

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("ENTRIES_PER_PAGE", "ENTRIES_MAX_PER_PAGE", "JWT_ACCESS_TTL_MIN")
    @classmethod
    def positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("page sizes and token lifetimes must be positive")
        return value


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if not settings.DB_URL:
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()

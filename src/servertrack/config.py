from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SERVERTRACK_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    db_path: Path = Path("data/servertrack.sqlite3")

    api_base_url: str = "https://multiplayer.factorio.com"
    api_username: str = ""
    api_token: str = Field(default="", repr=False)
    request_timeout_seconds: float = 30.0

    refresh_interval_seconds: int = 60
    history_retention_hours: int = 24
    history_samples_per_hour: int = 60
    history_window_hours: int = 24
    chart_bucket_count: int = 24

    chart_dir: Path = Path("data/charts")
    font_path: str | None = None
    log_level: str = "INFO"
    log_dir: Path | None = None

    @field_validator(
        "refresh_interval_seconds",
        "history_retention_hours",
        "history_samples_per_hour",
        "history_window_hours",
        "chart_bucket_count",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("api_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().rstrip("/")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


settings = Settings()

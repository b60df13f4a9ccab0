"""Human-friendly configuration loader.

The ``AppSettings`` class centralises every environment variable we rely on.

*What:* which backend stores the two return tables and how to reach it, how
the camera is polled, how dates are shown.
*When:* read once through ``get_settings()``; tests build their own instance.
*How:* pydantic-settings reads the process environment and optional ``.env``
files, so the service boots in development without extra setup.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Return Tracker"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    TZ: str = "Europe/Istanbul"
    LOG_LEVEL: str = "INFO"

    # ---- Record store
    # ``rest`` talks to a hosted PostgREST endpoint (e.g. Supabase), ``sql``
    # to any SQLAlchemy database URL.
    RETURNS_BACKEND: Literal["rest", "sql"] = "rest"
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_KEY", "SUPABASE_ANON_KEY"),
    )
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))
    EXPECTED_TABLE: str = "expected"
    RECEIVED_TABLE: str = "received"
    STORE_TIMEOUT_SECONDS: float = 15.0

    # ---- Spreadsheet import
    BARCODE_TOKEN_MIN_LENGTH: int = 6
    IMPORT_FALLBACK_SCAN: bool = True

    # ---- Camera scanning
    CAMERA_INDEX: int = 0
    CAMERA_WIDTH: int = 1280
    CAMERA_HEIGHT: int = 720
    SCAN_INTERVAL_SECONDS: float = 0.1
    SCAN_DEBOUNCE_SECONDS: float = 2.0

    @field_validator("RETURNS_BACKEND", mode="before")
    @classmethod
    def _lower_backend(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def templates_dir(self) -> Path:
        return self.BASE_DIR / "templates"

    @property
    def static_dir(self) -> Path:
        return self.BASE_DIR / "static"

    def missing_credentials(self) -> list[str]:
        """Names of the variables the selected backend still needs."""

        if self.RETURNS_BACKEND == "sql":
            return [] if self.DB_URL.strip() else ["DB_URL"]
        missing: list[str] = []
        if not self.SUPABASE_URL.strip():
            missing.append("SUPABASE_URL")
        if not self.SUPABASE_KEY.strip():
            missing.append("SUPABASE_KEY")
        return missing


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()

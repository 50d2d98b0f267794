"""
config.py — pydantic-settings Settings class.

All environment variables for the TrackMyStartup service are declared here.
The core package, the API and the CLI import `settings` from this module.

Usage:
    from tms_shared.config import settings
    print(settings.supabase_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_anon_key: str = Field(default="")
    supabase_service_key: str = Field(default="")

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:5173")
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_audience: str = Field(default="authenticated")

    # -------------------------------------------------------------------------
    # Session orchestration
    # -------------------------------------------------------------------------
    data_load_timeout_s: float = Field(default=10.0, gt=0)
    duplicate_event_window_s: float = Field(default=5.0, ge=0)
    profile_fetch_timeout_s: float = Field(default=5.0, gt=0)
    advisor_branding_ttl_s: float = Field(default=300.0, ge=0)
    current_view_ttl_days: int = Field(default=30)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def current_view_max_age_s(self) -> int:
        return self.current_view_ttl_days * 86400

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v

    @field_validator("current_view_ttl_days", mode="after")
    @classmethod
    def clamp_view_ttl(cls, v: int) -> int:
        # the currentView cookie lives between 1 and 30 days
        return min(max(v, 1), 30)


# ---------------------------------------------------------------------------
# Module-level singleton, import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()

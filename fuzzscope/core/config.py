"""Runtime configuration loaded from the environment."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FUZZSCOPE_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "fuzzscope"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Coverage reports ─────────────────────────────────────────────────
    coverage_report_dir: str = ""  # empty disables report export
    report_parallel_render: bool = False
    report_percentage_decimals: int = Field(default=2, ge=0, le=10)
    report_template_dir: str = ""  # empty uses the bundled templates


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()

"""
Engine configuration using pydantic-settings.

Loads tuning knobs for the extraction heuristics from environment variables
(prefixed ``FORECASTXL_``) with sensible defaults.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FORECASTXL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Plausible fiscal years for header detection
    min_year: int = 2020
    max_year: int = 2040

    # Scan widths (columns)
    year_scan_columns: int = Field(default=30, ge=1)
    label_scan_columns: int = Field(default=10, ge=1)
    marker_scan_columns: int = Field(default=10, ge=1)

    # Segmentation
    section_gap_rows: int = Field(default=3, ge=1)
    section_min_blocks: int = Field(default=1, ge=1)

    # Input parameters: rows scanned when a sheet has no year header
    parameter_fallback_rows: int = Field(default=20, ge=1)

    # Diagnostics preview for failed parses
    preview_rows: int = 10
    preview_columns: int = 8
    preview_cell_chars: int = 30

    # Overrides the calendar year used to classify periods
    current_year: Optional[int] = None

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
Unit tests for settings and logging setup.
"""
import pytest
import structlog

from forecastxl.config import Settings, get_settings
from forecastxl.core.logging import configure_logging


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Test the default heuristic knobs."""
        monkeypatch.delenv("FORECASTXL_MIN_YEAR", raising=False)
        settings = Settings(_env_file=None)

        assert settings.min_year == 2020
        assert settings.max_year == 2040
        assert settings.year_scan_columns == 30
        assert settings.label_scan_columns == 10
        assert settings.section_gap_rows == 3
        assert settings.section_min_blocks == 1
        assert settings.parameter_fallback_rows == 20
        assert settings.current_year is None

    def test_environment_override(self, monkeypatch):
        """Test FORECASTXL_ prefixed variables."""
        monkeypatch.setenv("FORECASTXL_MIN_YEAR", "2015")
        monkeypatch.setenv("FORECASTXL_CURRENT_YEAR", "2027")

        settings = Settings(_env_file=None)

        assert settings.min_year == 2015
        assert settings.current_year == 2027

    def test_get_settings_is_cached(self):
        """Test get_settings returns one instance."""
        get_settings.cache_clear()
        assert get_settings() is get_settings()


class TestLogging:
    """Tests for structlog configuration."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_configure_console(self):
        configure_logging(level="DEBUG", json_output=False)
        logger = structlog.get_logger("forecastxl.test")
        logger.info("Console logging configured", check=True)

    def test_configure_json(self):
        configure_logging(level="WARNING", json_output=True)
        logger = structlog.get_logger("forecastxl.test")
        logger.warning("JSON logging configured", check=True)

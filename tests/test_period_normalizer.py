"""
Unit tests for PeriodNormalizer service.
"""
from datetime import date, datetime

import pytest

from forecastxl.services.period_normalizer import PeriodNormalizer, PeriodType


class TestResolveYear:
    """Tests for header cell to year resolution."""

    @pytest.fixture
    def normalizer(self) -> PeriodNormalizer:
        return PeriodNormalizer(min_year=2020, max_year=2040)

    @pytest.mark.parametrize(
        "value,expected",
        [
            (2025.0, 2025),
            (2025, 2025),
            ("2025", 2025),
            ("2025E", 2025),
            ("FY2026", 2026),
            ("B2027", 2027),
            ("2028 Budget", 2028),
            ("Dec-25", 2025),
            ("des.26", 2026),
            (datetime(2029, 12, 31), 2029),
            (date(2030, 6, 30), 2030),
        ],
    )
    def test_recognized_years(self, normalizer: PeriodNormalizer, value, expected: int):
        assert normalizer.resolve_year(value) == expected

    @pytest.mark.parametrize(
        "value",
        [None, 2019.0, 2041.0, 2025.5, "Revenue", "20255", "12345", True, ""],
    )
    def test_rejected_values(self, normalizer: PeriodNormalizer, value):
        assert normalizer.resolve_year(value) is None

    def test_custom_range(self):
        normalizer = PeriodNormalizer(min_year=2010, max_year=2015)
        assert normalizer.resolve_year(2012.0) == 2012
        assert normalizer.resolve_year(2020.0) is None


class TestPeriodClassification:
    """Tests for actual/budget/forecast classification."""

    def test_classify_relative_to_current_year(self):
        normalizer = PeriodNormalizer()
        assert normalizer.classify(2024, current_year=2025) == PeriodType.ACTUAL
        assert normalizer.classify(2025, current_year=2025) == PeriodType.BUDGET
        assert normalizer.classify(2026, current_year=2025) == PeriodType.FORECAST

    def test_classify_defaults_to_today(self):
        normalizer = PeriodNormalizer()
        assert normalizer.classify(date.today().year) == PeriodType.BUDGET

    def test_fiscal_year_end(self):
        assert PeriodNormalizer.fiscal_year_end(2025) == date(2025, 12, 31)

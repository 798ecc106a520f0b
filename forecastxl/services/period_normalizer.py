"""
Period normalizer service for ForecastXL.

Resolves header cells to fiscal years and classifies the resulting periods.
"""
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


class PeriodType(str, Enum):
    """Classification of a fiscal year relative to the current year."""

    ACTUAL = "actual"
    BUDGET = "budget"
    FORECAST = "forecast"


class PeriodNormalizer:
    """
    Service for fiscal-year detection in column headers.

    Accepts:
    - Numbers: 2025, 2025.0
    - Text with a standalone 4-digit year: "2025", "2025E", "FY2025", "B 2025"
    - Month-year text: "Dec-25", "des.25", "December 2025"
    - Date cells
    """

    YEAR_PATTERN = re.compile(r"(?<!\d)(\d{4})(?!\d)")
    MONTH_YEAR_PATTERN = re.compile(
        r"^(jan|feb|mar|apr|mai|may|jun|jul|aug|sep|okt|oct|nov|des|dec)[a-z]*[\s.\-/']*(\d{2})$",
        re.IGNORECASE,
    )

    def __init__(self, min_year: int = 2020, max_year: int = 2040):
        self.min_year = min_year
        self.max_year = max_year

    def resolve_year(self, value: Any) -> Optional[int]:
        """
        Resolve a header cell value to a plausible fiscal year.

        Args:
            value: Cell value (float, str, date or None).

        Returns:
            Year within the configured range, or None.
        """
        year: Optional[int] = None

        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (datetime, date)):
            year = value.year
        elif isinstance(value, (int, float)):
            if float(value).is_integer():
                year = int(value)
        elif isinstance(value, str):
            year = self._year_from_text(value.strip())

        if year is not None and self.min_year <= year <= self.max_year:
            return year
        return None

    def _year_from_text(self, text: str) -> Optional[int]:
        """Extract a year from header text."""
        match = self.YEAR_PATTERN.search(text)
        if match:
            return int(match.group(1))

        match = self.MONTH_YEAR_PATTERN.match(text)
        if match:
            return 2000 + int(match.group(2))

        return None

    def classify(self, year: int, current_year: Optional[int] = None) -> PeriodType:
        """
        Classify a fiscal year as actual, budget or forecast.

        Args:
            year: Fiscal year.
            current_year: Reference year; defaults to today's year.

        Returns:
            PeriodType for the year.
        """
        current_year = current_year or date.today().year
        if year < current_year:
            return PeriodType.ACTUAL
        if year == current_year:
            return PeriodType.BUDGET
        return PeriodType.FORECAST

    @staticmethod
    def fiscal_year_end(year: int) -> date:
        """Fiscal years end on December 31st."""
        return date(year, 12, 31)


def get_period_normalizer(min_year: int = 2020, max_year: int = 2040) -> PeriodNormalizer:
    """Get PeriodNormalizer instance."""
    return PeriodNormalizer(min_year=min_year, max_year=max_year)

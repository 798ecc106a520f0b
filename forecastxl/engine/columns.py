"""
Column detection for the ForecastXL Engine.

Finds the label column and the fiscal-year header row of a row range.
Row ranges are half-open: ``start_row`` inclusive, ``end_row`` exclusive.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog

from forecastxl.config import Settings, get_settings
from forecastxl.services.excel_parser import ParsedSheet
from forecastxl.services.period_normalizer import PeriodNormalizer

logger = structlog.get_logger(__name__)

# Bilingual (EN + NO) vocabulary that identifies financial row labels
FINANCIAL_VOCABULARY = re.compile(
    r"revenue|omsetning|ebitda|driftsinntekt|turnover|inntekt|resultat|nibd|fcf|capex|gjeld|debt|aksjer|shares",
    re.IGNORECASE,
)

DEFAULT_LABEL_COLUMN = 2


@dataclass(frozen=True)
class YearColumn:
    """A column carrying one fiscal year."""
    column: int
    year: int


@dataclass(frozen=True)
class YearHeader:
    """The row anchoring a block's period axis."""
    row: int
    columns: List[YearColumn]

    @property
    def years(self) -> List[int]:
        return [yc.year for yc in self.columns]


class ColumnDetector:
    """
    Detects label and year columns within a row range.

    Both detectors are re-run per block: sibling blocks on one sheet may not
    share column alignment.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._periods = PeriodNormalizer(
            min_year=self.settings.min_year,
            max_year=self.settings.max_year,
        )

    def find_label_column(self, sheet: ParsedSheet, start_row: int, end_row: int) -> int:
        """
        Find the column most likely holding row labels.

        Scores the leftmost columns by the number of cells matching the
        financial vocabulary. Ties go to the leftmost column.

        Args:
            sheet: Decoded worksheet.
            start_row: First row (inclusive).
            end_row: Last row (exclusive).

        Returns:
            1-based column index; column B when nothing scores.
        """
        max_col = min(self.settings.label_scan_columns, sheet.max_column)
        max_row = min(end_row, sheet.max_row + 1)
        scores: Dict[int, int] = {}

        for row in range(start_row, max_row):
            for col in range(1, max_col + 1):
                text = sheet.text(row, col)
                if text and FINANCIAL_VOCABULARY.search(text):
                    scores[col] = scores.get(col, 0) + 1

        if not scores:
            return DEFAULT_LABEL_COLUMN

        best_col = min(scores, key=lambda col: (-scores[col], col))
        logger.debug("Label column detected", sheet=sheet.name, column=best_col, score=scores[best_col])
        return best_col

    def find_year_header(
        self,
        sheet: ParsedSheet,
        start_row: int,
        end_row: int,
        min_columns: int = 2,
    ) -> Optional[YearHeader]:
        """
        Find the first row carrying at least ``min_columns`` distinct years.

        Args:
            sheet: Decoded worksheet.
            start_row: First row (inclusive).
            end_row: Last row (exclusive).
            min_columns: Minimum distinct years required.

        Returns:
            YearHeader with columns sorted left-to-right, or None.
        """
        max_col = min(self.settings.year_scan_columns, sheet.max_column)
        max_row = min(end_row, sheet.max_row + 1)

        for row in range(start_row, max_row):
            candidates: List[YearColumn] = []
            seen = set()

            for col in range(1, max_col + 1):
                year = self._periods.resolve_year(sheet.value(row, col))
                # Duplicate years keep their leftmost column
                if year is not None and year not in seen:
                    seen.add(year)
                    candidates.append(YearColumn(column=col, year=year))

            if len(candidates) >= min_columns:
                return YearHeader(row=row, columns=candidates)

        return None

    def find_year_header_relaxed(
        self,
        sheet: ParsedSheet,
        start_row: int,
        end_row: int,
    ) -> Optional[YearHeader]:
        """
        Strict search (two years) first, then accept a single year column.
        """
        header = self.find_year_header(sheet, start_row, end_row, min_columns=2)
        if header is None:
            header = self.find_year_header(sheet, start_row, end_row, min_columns=1)
            if header is not None:
                logger.info(
                    "Single-year header accepted",
                    sheet=sheet.name,
                    row=header.row,
                    year=header.years[0],
                )
        return header

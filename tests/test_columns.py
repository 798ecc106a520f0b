"""
Tests for label column and year header detection.
"""
import pytest

from forecastxl.config import Settings
from forecastxl.engine.columns import DEFAULT_LABEL_COLUMN, ColumnDetector


@pytest.fixture
def detector(settings: Settings) -> ColumnDetector:
    return ColumnDetector(settings)


class TestLabelColumn:
    """Tests for ColumnDetector.find_label_column."""

    def test_highest_score_wins(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([
            ["Revenue", "", 2025],
            ["", "Revenue", 100],
            ["", "EBITDA", 10],
            ["", "NIBD", 5],
        ])
        assert detector.find_label_column(sheet, 1, 5) == 2

    def test_tie_goes_to_leftmost(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([
            ["", "", "Revenue", "EBITDA"],
            ["", "", "EBITDA", "Revenue"],
        ])
        assert detector.find_label_column(sheet, 1, 3) == 3

    def test_default_when_nothing_scores(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([["foo", "bar"], ["baz", 1]])
        assert detector.find_label_column(sheet, 1, 3) == DEFAULT_LABEL_COLUMN

    def test_range_is_half_open(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([
            ["Revenue"],
            ["", "Revenue"],
            ["", "EBITDA"],
        ])
        assert detector.find_label_column(sheet, 1, 2) == 1
        assert detector.find_label_column(sheet, 2, 4) == 2

    def test_norwegian_vocabulary(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([
            ["", "", "Omsetning"],
            ["", "", "Netto rentebærende gjeld"],
        ])
        assert detector.find_label_column(sheet, 1, 3) == 3


class TestYearHeader:
    """Tests for ColumnDetector.find_year_header."""

    def test_first_row_with_two_years(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([
            ["Model", 2024],
            ["", 2025, 2026, 2027],
            ["", 2030, 2031],
        ])
        header = detector.find_year_header(sheet, 1, 4)
        assert header.row == 2
        assert header.years == [2025, 2026, 2027]
        assert [yc.column for yc in header.columns] == [2, 3, 4]

    def test_duplicate_years_keep_leftmost(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([["", "2025E", "2026E", "FY2025", "2027E"]])
        header = detector.find_year_header(sheet, 1, 2)
        assert header.years == [2025, 2026, 2027]
        assert [yc.column for yc in header.columns] == [2, 3, 5]

    def test_mixed_header_formats(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([["", "B2025", "Dec-26", "2027 Budget"]])
        header = detector.find_year_header(sheet, 1, 2)
        assert header.years == [2025, 2026, 2027]

    def test_out_of_range_years_ignored(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([["", 1999, 2050, 2025]])
        assert detector.find_year_header(sheet, 1, 2) is None

    def test_no_header(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([["Revenue", 100, 110]])
        assert detector.find_year_header(sheet, 1, 2) is None

    def test_scan_width_respected(self, sheet_factory):
        detector = ColumnDetector(Settings(year_scan_columns=3))
        sheet = sheet_factory([["", "", "", 2025, 2026]])
        assert detector.find_year_header(sheet, 1, 2) is None

    def test_relaxed_accepts_single_year(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([["", 2025], ["Revenue", 100]])
        assert detector.find_year_header(sheet, 1, 3) is None
        header = detector.find_year_header_relaxed(sheet, 1, 3)
        assert header.row == 1
        assert header.years == [2025]

    def test_relaxed_prefers_strict_match(self, detector: ColumnDetector, sheet_factory):
        sheet = sheet_factory([["", 2024], ["", 2025, 2026]])
        header = detector.find_year_header_relaxed(sheet, 1, 3)
        assert header.row == 2

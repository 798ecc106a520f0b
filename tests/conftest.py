"""
Pytest configuration and fixtures.
"""
from io import BytesIO
from typing import Any, Callable, Dict, List, Sequence

import pytest
from openpyxl import Workbook

from forecastxl.config import Settings
from forecastxl.services.excel_parser import ParsedSheet, read_cell_value

Rows = Sequence[Sequence[Any]]


def build_workbook_bytes(sheets: Dict[str, Rows]) -> bytes:
    """
    Write sheets of rows (1-based, top to bottom) to an in-memory xlsx.

    ``None`` and ``""`` cells are left empty.
    """
    wb = Workbook()
    wb.remove(wb.active)

    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row_idx, row in enumerate(rows, start=1):
            for col_idx, value in enumerate(row, start=1):
                if value is None or value == "":
                    continue
                ws.cell(row=row_idx, column=col_idx, value=value)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_sheet(rows: Rows, name: str = "Sheet1") -> ParsedSheet:
    """Build a ParsedSheet directly, normalizing values like the decoder does."""
    cells = {}
    max_column = 1
    for row_idx, row in enumerate(rows, start=1):
        for col_idx, raw in enumerate(row, start=1):
            value = read_cell_value(raw)
            if value is not None:
                cells[(row_idx, col_idx)] = value
                max_column = max(max_column, col_idx)
    return ParsedSheet(
        name=name,
        max_row=max(len(rows), 1),
        max_column=max_column,
        cells=cells,
    )


YEARS = [2025, 2026, 2027, 2028, 2029]


def two_block_rows() -> List[List[Any]]:
    """Parameter area followed by two ``Name:`` blocks of five years each."""
    return [
        ["", "Number of ord shares completion", 1000000],
        ["", "Number of ord shares", 1200000],
        ["", "TSO warrants", 50000, 12.5],
        ["", "MIP share", 0.05],
        ["", "Acquired companies multiple", 6, 7],
        [],
        ["Name: Baseline Plan"],
        ["", "", *YEARS],
        ["", "Revenue", 100, 110, 121, 133, 146],
        ["", "EBITDA managed services", 10, 11, 12, 13, 14],
        ["", "% margin", 0.1, 0.1, 0.1, 0.1, 0.1],
        ["", "EBITDA", 20, 22, 24, 26, 28],
        [],
        ["Name: Upside Plan"],
        ["", "", *YEARS],
        ["", "Revenue", 120, 140, 160, 180, 200],
        ["", "EBITDA", 30, 35, 40, 45, 50],
    ]


@pytest.fixture
def settings() -> Settings:
    """Settings with a fixed reference year for period classification."""
    return Settings(current_year=2026)


@pytest.fixture
def workbook_bytes() -> Callable[[Dict[str, Rows]], bytes]:
    """Factory building xlsx bytes from ``{sheet name: rows}``."""
    return build_workbook_bytes


@pytest.fixture
def sheet_factory() -> Callable[..., ParsedSheet]:
    """Factory building a ParsedSheet from rows."""
    return build_sheet


@pytest.fixture
def two_block_workbook() -> bytes:
    """A single-sheet workbook with two named model blocks."""
    return build_workbook_bytes({"Models": two_block_rows()})


@pytest.fixture
def model_rows() -> List[List[Any]]:
    """Rows of the two-block model sheet."""
    return two_block_rows()

"""
Excel parser service.

Decodes uploaded workbook bytes into in-memory sheet grids and normalizes each
cell to a typed value (number, text, date or empty).
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog
from openpyxl import load_workbook
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.worksheet.formula import ArrayFormula, DataTableFormula
from openpyxl.worksheet.worksheet import Worksheet

from forecastxl.exceptions import DocumentDecodeError, EmptyWorkbookError
from forecastxl.services.numeric_parser import get_numeric_parser

logger = structlog.get_logger(__name__)

CellValue = Union[float, str, datetime, date, None]

# Cached error results of formulas
EXCEL_ERRORS = {
    "#DIV/0!", "#N/A", "#NAME?", "#NULL!", "#NUM!", "#REF!", "#VALUE!",
    "#SPILL!", "#CALC!", "#GETTING_DATA",
}


def read_cell_value(raw: Any) -> CellValue:
    """
    Normalize a raw openpyxl cell value.

    Workbooks are loaded with ``data_only=True`` so formula cells already hold
    their last computed result; anything still looking like formula source
    resolves to None.

    Args:
        raw: Value as returned by openpyxl.

    Returns:
        float, stripped str, datetime/date, or None.
    """
    if raw is None:
        return None
    if isinstance(raw, CellRichText):
        raw = "".join(
            block.text if isinstance(block, TextBlock) else str(block)
            for block in raw
        )
    if isinstance(raw, (ArrayFormula, DataTableFormula)):
        return None
    if isinstance(raw, bool):
        return "TRUE" if raw else "FALSE"
    if isinstance(raw, (int, float, Decimal)):
        number = float(raw)
        return None if math.isnan(number) or math.isinf(number) else number
    if isinstance(raw, (datetime, date)):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text or text.startswith("=") or text.upper() in EXCEL_ERRORS:
            return None
        return text
    # time / timedelta cells carry no period or amount
    return None


def cell_text(value: CellValue) -> str:
    """Render a normalized value as label text."""
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return str(value).strip()


def cell_number(value: CellValue) -> Optional[float]:
    """Resolve a normalized value to a number, parsing text in either locale."""
    if value is None or isinstance(value, (datetime, date)):
        return None
    if isinstance(value, float):
        return value
    return get_numeric_parser().parse(value).value


@dataclass
class ParsedSheet:
    """A worksheet decoded into a sparse grid of normalized values (1-based)."""

    name: str
    max_row: int
    max_column: int
    cells: Dict[Tuple[int, int], CellValue] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.cells

    def value(self, row: int, column: int) -> CellValue:
        return self.cells.get((row, column))

    def text(self, row: int, column: int) -> str:
        return cell_text(self.value(row, column))

    def number(self, row: int, column: int) -> Optional[float]:
        return cell_number(self.value(row, column))

    def row_is_empty(self, row: int) -> bool:
        return all(
            self.value(row, col) is None for col in range(1, self.max_column + 1)
        )


@dataclass
class ParsedWorkbook:
    """Represents a fully decoded Excel workbook."""

    filename: Optional[str]
    sheets: List[ParsedSheet]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def sheet_names(self) -> List[str]:
        return [sheet.name for sheet in self.sheets]


class ExcelParser:
    """
    Service for decoding Excel workbooks.

    Reads computed values (never formula text) and flattens rich text.
    """

    def parse_bytes(self, data: bytes, filename: Optional[str] = None) -> ParsedWorkbook:
        """
        Decode an in-memory xlsx document.

        Args:
            data: Raw document bytes.
            filename: Display name of the upload, for diagnostics.

        Returns:
            ParsedWorkbook with one ParsedSheet per worksheet.

        Raises:
            DocumentDecodeError: If the bytes are not a readable workbook.
            EmptyWorkbookError: If the workbook has no worksheets.
        """
        logger.info("Decoding workbook", filename=filename, size=len(data))

        try:
            wb = load_workbook(BytesIO(data), data_only=True, rich_text=True)
        except Exception as e:
            raise DocumentDecodeError(
                "The file could not be read as an Excel workbook",
                details={"filename": filename, "reason": str(e)},
            ) from e

        try:
            if not wb.worksheets:
                raise EmptyWorkbookError(filename=filename)
            sheets = [self._parse_sheet(ws) for ws in wb.worksheets]
        finally:
            wb.close()

        logger.info(
            "Workbook decoded",
            filename=filename,
            sheets=len(sheets),
        )

        return ParsedWorkbook(
            filename=filename,
            sheets=sheets,
            metadata={"sheet_count": len(sheets)},
        )

    def _parse_sheet(self, ws: Worksheet) -> ParsedSheet:
        """
        Read every populated cell of a worksheet.

        Args:
            ws: openpyxl Worksheet object.

        Returns:
            ParsedSheet with normalized values.
        """
        cells: Dict[Tuple[int, int], CellValue] = {}

        for row_idx, row in enumerate(ws.iter_rows(values_only=True), start=1):
            for col_idx, raw in enumerate(row, start=1):
                value = read_cell_value(raw)
                if value is not None:
                    cells[(row_idx, col_idx)] = value

        return ParsedSheet(
            name=ws.title,
            max_row=ws.max_row,
            max_column=ws.max_column,
            cells=cells,
        )


# Singleton instance
_parser_instance: Optional[ExcelParser] = None


def get_excel_parser() -> ExcelParser:
    """Get singleton ExcelParser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = ExcelParser()
    return _parser_instance

"""
Orchestrator for the ForecastXL Engine.

Main entry point that coordinates the extraction of one uploaded workbook:
Step 1: Decode (workbook bytes -> normalized sheet grids)
Step 2: Segment (each sheet -> model blocks)
Step 3: Parameters (workbook-wide deal constants)
Step 4: Parse (each block -> periods of mapped values)
Step 5: Aggregate (models + parameters + warnings, or a diagnostic failure)
"""

from typing import Any, Dict, List, Optional

import structlog
from openpyxl.utils import get_column_letter

from forecastxl.config import Settings, get_settings
from forecastxl.engine.block_parser import BlockParser
from forecastxl.engine.columns import ColumnDetector
from forecastxl.engine.models import ModelBlock, ParseResult
from forecastxl.engine.parameters import (
    WorkbookParameters,
    enrich_input_parameters,
    extract_input_parameters,
)
from forecastxl.engine.segmentation import MarkerRowStrategy, SegmentationOutcome, default_segmenter
from forecastxl.exceptions import NoModelsFoundError
from forecastxl.services.excel_parser import ExcelParser, ParsedSheet, ParsedWorkbook, get_excel_parser

logger = structlog.get_logger(__name__)

SEARCH_HINTS = (
    'Rows labelled "Revenue", "EBITDA", "Omsetning", "Driftsinntekter" and similar',
    "Columns headed by fiscal years ({min_year}-{max_year})",
    'Optional "Name:" rows separating model blocks',
)


class ParseEngine:
    """
    Extracts model blocks and input parameters from workbooks.

    Stateless between calls; one instance may parse any number of uploads.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        excel_parser: Optional[ExcelParser] = None,
        block_parser: Optional[BlockParser] = None,
    ):
        self.settings = settings or get_settings()
        self.excel_parser = excel_parser or get_excel_parser()
        self.detector = ColumnDetector(self.settings)
        self.block_parser = block_parser or BlockParser(self.settings, detector=self.detector)

    def parse(self, data: bytes, filename: Optional[str] = None) -> ParseResult:
        """
        Parse an uploaded workbook.

        Args:
            data: Raw xlsx bytes.
            filename: Display name of the upload; names single-sheet models.

        Returns:
            ParseResult with every model block found.

        Raises:
            DocumentDecodeError: If the bytes are not a readable workbook.
            NoModelsFoundError: If no sheet yields a usable model block.
        """
        workbook = self.excel_parser.parse_bytes(data, filename=filename)
        warnings: List[str] = []
        models: List[ModelBlock] = []
        parameters = WorkbookParameters()

        if len(workbook.sheets) > 1:
            warnings.append(
                f"Found {len(workbook.sheets)} sheets: {', '.join(workbook.sheet_names)}"
            )

        single_sheet = len(workbook.sheets) == 1

        for sheet in workbook.sheets:
            if sheet.is_empty:
                logger.info("Skipping empty sheet", sheet=sheet.name)
                warnings.append(f'Sheet "{sheet.name}" is empty. Skipped.')
                continue

            segmenter = default_segmenter(
                display_name=filename,
                single_sheet=single_sheet,
                settings=self.settings,
            )
            outcome = segmenter.segment(sheet)
            self._collect_parameters(sheet, outcome, parameters)

            for block in outcome.blocks:
                result = self.block_parser.parse(sheet, block)
                warnings.extend(result.warnings)
                if result.model is not None:
                    models.append(result.model)

        warnings.extend(parameters.warnings)

        if not models:
            raise self._no_models_error(workbook)

        logger.info(
            "Workbook parsed",
            filename=filename,
            models=len(models),
            parameters=len(parameters.params.as_dict()),
            warnings=len(warnings),
        )

        return ParseResult(
            models=tuple(models),
            input_parameters=parameters.params,
            warnings=tuple(warnings),
        )

    def _collect_parameters(
        self,
        sheet: ParsedSheet,
        outcome: SegmentationOutcome,
        parameters: WorkbookParameters,
    ) -> None:
        """Extract input parameters from the sheet's parameter area."""
        if outcome.strategy == MarkerRowStrategy.name and outcome.blocks:
            first_row = outcome.blocks[0].start_row
            label_col = self.detector.find_label_column(sheet, 1, first_row)
            params_end = first_row
            enrich_start = first_row
        else:
            label_col = self.detector.find_label_column(sheet, 1, sheet.max_row + 1)
            header = self.detector.find_year_header(sheet, 1, sheet.max_row + 1)
            params_end = (
                header.row if header
                else min(self.settings.parameter_fallback_rows, sheet.max_row)
            )
            enrich_start = 1

        parameters.offer(sheet.name, extract_input_parameters(sheet, params_end, label_col))
        parameters.enrich(
            sheet.name,
            enrich_input_parameters(sheet, enrich_start, sheet.max_row, label_col),
        )

    def _no_models_error(self, workbook: ParsedWorkbook) -> NoModelsFoundError:
        """Build the diagnostic failure raised when nothing was extracted."""
        sheets = [self._describe_sheet(sheet) for sheet in workbook.sheets]

        lines = []
        for info in sheets:
            lines.append(f'Sheet "{info["name"]}" ({info["rows"]} rows, {info["columns"]} columns):')
            lines.extend(f"  {line}" for line in info["preview"])

        hints = [
            f"  - {hint.format(min_year=self.settings.min_year, max_year=self.settings.max_year)}"
            for hint in SEARCH_HINTS
        ]
        message = (
            "Could not find financial data in the file.\n\n"
            "The parser looks for:\n" + "\n".join(hints) + "\n\n"
            "File structure:\n" + "\n".join(lines)
        )

        logger.warning("No model blocks found", filename=workbook.filename, sheets=len(sheets))
        return NoModelsFoundError(message, sheets=sheets)

    def _describe_sheet(self, sheet: ParsedSheet) -> Dict[str, Any]:
        """Dimensions and a short preview of the top-left corner of a sheet."""
        width = self.settings.preview_cell_chars
        preview = []

        for row in range(1, min(self.settings.preview_rows, sheet.max_row) + 1):
            cells = []
            for col in range(1, min(self.settings.preview_columns, sheet.max_column) + 1):
                text = sheet.text(row, col)
                if text:
                    cells.append(f'{get_column_letter(col)}:"{text[:width]}"')
            if cells:
                preview.append(f"Row {row}: {', '.join(cells)}")

        return {
            "name": sheet.name,
            "rows": sheet.max_row,
            "columns": sheet.max_column,
            "preview": preview,
        }


def parse_workbook(
    data: bytes,
    filename: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> ParseResult:
    """
    Main entry point for the ForecastXL Engine.

    Args:
        data: Raw xlsx bytes.
        filename: Optional display name of the upload.
        settings: Optional settings override.

    Returns:
        ParseResult with models, input parameters and warnings.

    Raises:
        DocumentDecodeError: If the bytes are not a readable workbook.
        NoModelsFoundError: If no model block could be extracted.
    """
    return ParseEngine(settings=settings).parse(data, filename=filename)

"""
Diagnostic script for workbook parsing.

Shows:
1. Segmentation strategy and blocks per sheet.
2. Extracted models with period counts and unmapped rows.
3. Input parameters and warnings (or the no-models diagnostic).
"""
import json
import sys
from pathlib import Path

from forecastxl.config import get_settings
from forecastxl.core.logging import configure_logging
from forecastxl.engine.orchestrator import parse_workbook
from forecastxl.engine.segmentation import default_segmenter
from forecastxl.exceptions import ForecastXLError
from forecastxl.schemas.parse_result import ParseResultSchema
from forecastxl.services.excel_parser import get_excel_parser


def diagnose_workbook(path: Path) -> int:
    print(f"\n--- Diagnosing: {path.name} ---")

    if not path.exists():
        print(f"File not found: {path}")
        return 1

    data = path.read_bytes()

    # 1. Segmentation
    try:
        workbook = get_excel_parser().parse_bytes(data, filename=path.name)
    except ForecastXLError as e:
        print(f"  Decode failed [{e.error_code}]: {e.message}")
        return 1

    single_sheet = len(workbook.sheets) == 1
    for sheet in workbook.sheets:
        segmenter = default_segmenter(display_name=path.name, single_sheet=single_sheet)
        outcome = segmenter.segment(sheet)
        print(f"  Sheet {sheet.name!r} ({sheet.max_row}x{sheet.max_column}): {outcome.strategy}")
        for block in outcome.blocks:
            print(f"    - {block.name!r} rows {block.start_row}-{block.end_row - 1}")

    # 2-3. Full parse
    try:
        result = parse_workbook(data, filename=path.name)
    except ForecastXLError as e:
        print(f"\nParse failed [{e.error_code}]:\n{e.message}")
        return 1

    print(json.dumps(ParseResultSchema.from_result(result).model_dump(mode="json"), indent=2))
    return 0


def main() -> int:
    if len(sys.argv) < 2:
        print("Usage: python scripts/debug_parse.py <workbook.xlsx> [...]")
        return 2

    settings = get_settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)

    status = 0
    for arg in sys.argv[1:]:
        status |= diagnose_workbook(Path(arg))
    return status


if __name__ == "__main__":
    sys.exit(main())

"""
Block parser for the ForecastXL Engine.

Turns one SheetBlock into a ModelBlock: locates the label and year columns
inside the block, walks its rows in document order and writes every mapped
value into the period of its year column.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from forecastxl.config import Settings, get_settings
from forecastxl.engine.columns import ColumnDetector, YearHeader
from forecastxl.engine.mapping import LabelMapper, ParseContext, get_label_mapper
from forecastxl.engine.models import BlockSource, ModelBlock, Period
from forecastxl.engine.segmentation import SheetBlock
from forecastxl.services.excel_parser import ParsedSheet
from forecastxl.services.period_normalizer import PeriodNormalizer

logger = structlog.get_logger(__name__)

# Titles and headings that never carry data
STRUCTURAL_LABELS = {
    "input",
    "inndata",
    "consolidated p&l",
    "konsolidert resultat",
    "comment",
    "kommentar",
}
STRUCTURAL_PATTERN = re.compile(
    r"^(p&l|resultat(regnskap)?|balanse|balance|summary|sammendrag|notes?|noter?)$"
)


def is_structural_label(label: str) -> bool:
    """True for block markers and section headings."""
    lower = label.lower()
    return (
        lower.startswith("name:")
        or lower in STRUCTURAL_LABELS
        or STRUCTURAL_PATTERN.match(lower) is not None
    )


@dataclass
class BlockParseOutcome:
    """Result of parsing one block: the model (if any) and its warnings."""
    model: Optional[ModelBlock]
    warnings: List[str] = field(default_factory=list)


class BlockParser:
    """
    Parses model blocks into ModelBlocks.

    Example:
        parser = BlockParser()
        outcome = parser.parse(sheet, block)
        if outcome.model:
            print(len(outcome.model.periods))
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        mapper: Optional[LabelMapper] = None,
        detector: Optional[ColumnDetector] = None,
    ):
        self.settings = settings or get_settings()
        self.mapper = mapper or get_label_mapper()
        self.detector = detector or ColumnDetector(self.settings)
        self.periods = PeriodNormalizer(
            min_year=self.settings.min_year,
            max_year=self.settings.max_year,
        )

    def parse(self, sheet: ParsedSheet, block: SheetBlock) -> BlockParseOutcome:
        """
        Parse one block of a sheet.

        Args:
            sheet: Decoded worksheet the block belongs to.
            block: Row range and name of the block.

        Returns:
            BlockParseOutcome; ``model`` is None when the block is dropped.
        """
        end_row = min(block.end_row, sheet.max_row + 1)
        label_col = self.detector.find_label_column(sheet, block.start_row, end_row)
        header = self.detector.find_year_header_relaxed(sheet, block.start_row, end_row)

        if header is None:
            message = (
                f'Block "{block.name}" (sheet "{sheet.name}", rows {block.start_row}-{end_row}): '
                "no year columns found in any header row. Skipped."
            )
            logger.warning("Block has no year header", sheet=sheet.name, block=block.name)
            return BlockParseOutcome(model=None, warnings=[message])

        values, unmapped = self._scan_rows(sheet, block.start_row, end_row, label_col, header)
        periods = self._build_periods(values)

        if not periods:
            message = (
                f'Block "{block.name}" (sheet "{sheet.name}"): '
                "no recognized financial data found. Skipped."
            )
            logger.warning(
                "Block has no recognized data",
                sheet=sheet.name,
                block=block.name,
                unmapped=len(unmapped),
            )
            return BlockParseOutcome(model=None, warnings=[message])

        warnings = []
        if unmapped:
            warnings.append(
                f'Block "{block.name}": {len(unmapped)} unrecognized rows: {", ".join(unmapped)}'
            )

        model = ModelBlock(
            name=block.name,
            periods=tuple(periods),
            unmapped_rows=tuple(unmapped),
            source=BlockSource(
                sheet=sheet.name,
                start_row=block.start_row,
                end_row=min(end_row - 1, sheet.max_row),
            ),
        )

        logger.info(
            "Block parsed",
            sheet=sheet.name,
            block=block.name,
            header_row=header.row,
            label_column=label_col,
            periods=len(periods),
            unmapped=len(unmapped),
        )
        return BlockParseOutcome(model=model, warnings=warnings)

    def _row_label(self, sheet: ParsedSheet, row: int, label_col: int) -> str:
        """Label text of a row, falling back to neighbouring columns."""
        label = sheet.text(row, label_col)
        if label:
            return label

        for col in (1, label_col - 1, label_col + 1):
            if col < 1 or col == label_col:
                continue
            alt = sheet.text(row, col)
            if len(alt) > 1:
                return alt
        return ""

    def _scan_rows(
        self,
        sheet: ParsedSheet,
        start_row: int,
        end_row: int,
        label_col: int,
        header: YearHeader,
    ):
        """
        Walk the block rows in order, collecting values per year.

        Returns:
            Tuple of ({year: {field: value}}, [unmapped labels]).
        """
        values: Dict[int, Dict[str, float]] = {yc.year: {} for yc in header.columns}
        unmapped: List[str] = []
        context = ParseContext()

        for row in range(start_row, end_row):
            if row == header.row:
                continue

            label = self._row_label(sheet, row, label_col)
            if not label or is_structural_label(label):
                continue

            period_field = self.mapper.map(label, context)
            row_values = {yc.year: sheet.number(row, yc.column) for yc in header.columns}

            if period_field is None:
                if len(label) > 1 and any(v is not None for v in row_values.values()):
                    unmapped.append(label)
                continue

            for year, value in row_values.items():
                if value is not None:
                    values[year][period_field.value] = value

        return values, unmapped

    def _build_periods(self, values: Dict[int, Dict[str, float]]) -> List[Period]:
        periods = []
        for year in sorted(values):
            if not values[year]:
                continue
            periods.append(Period(
                year=year,
                period_date=self.periods.fiscal_year_end(year),
                period_label=str(year),
                period_type=self.periods.classify(year, self.settings.current_year),
                **values[year],
            ))
        return periods

"""
Block segmentation for the ForecastXL Engine.

Splits a worksheet into independent model blocks. Three strategies are tried
in order of decreasing specificity; the first one yielding enough blocks wins
and the rest are not attempted for that sheet:

1. Marker rows ("Name: Baseline Plan")
2. Section headings ("Scenario A", "Base case") and empty-row gaps
3. The whole sheet as one block
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

import structlog

from forecastxl.config import Settings, get_settings
from forecastxl.engine.columns import ColumnDetector
from forecastxl.services.excel_parser import ParsedSheet

logger = structlog.get_logger(__name__)

MARKER_PATTERN = re.compile(r"^name:\s*", re.IGNORECASE)

SECTION_PATTERN = re.compile(
    r"^(scenario|case|modell?|plan|budget|forecast|prognose|alternativ|alternative)\b"
    r"|^(base|bull|bear|best|worst|upside|downside)\s+case\b",
    re.IGNORECASE,
)

# Broader than the label-column vocabulary: any line-item word disqualifies a title
LINE_ITEM_VOCABULARY = re.compile(
    r"revenue|omsetning|ebitda|nibd|capex|aksjer|share|vekst|growth|margin|fcf|gjeld|debt"
    r"|adjustments?|justeringer|pref|mip|tso|warrant|turnover|driftsinnt",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SheetBlock:
    """A candidate model block: a named half-open row range of one sheet."""
    name: str
    sheet_name: str
    start_row: int
    end_row: int


class SegmentationStrategy(Protocol):
    """One way of splitting a sheet into blocks."""

    name: str
    min_blocks: int

    def segment(self, sheet: ParsedSheet) -> List[SheetBlock]:
        ...


class MarkerRowStrategy:
    """Blocks opened by cells reading ``Name: <model name>``."""

    name = "marker_rows"
    min_blocks = 1

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def segment(self, sheet: ParsedSheet) -> List[SheetBlock]:
        max_col = min(self.settings.marker_scan_columns, sheet.max_column)
        starts = []

        for row in range(1, sheet.max_row + 1):
            for col in range(1, max_col + 1):
                text = sheet.text(row, col)
                if MARKER_PATTERN.match(text):
                    name = MARKER_PATTERN.sub("", text).strip()
                    if name:
                        starts.append((row, name))
                    # Only the first marker of a row counts
                    break

        blocks = []
        for i, (row, name) in enumerate(starts):
            end_row = starts[i + 1][0] if i + 1 < len(starts) else sheet.max_row + 1
            blocks.append(SheetBlock(name=name, sheet_name=sheet.name, start_row=row, end_row=end_row))
        return blocks


class SectionHeadingStrategy:
    """
    Blocks opened by scenario-style titles in the label column.

    A title must not look like a financial line item. A run of empty rows
    closes the open block.
    """

    name = "section_headings"

    def __init__(self, settings: Optional[Settings] = None, detector: Optional[ColumnDetector] = None):
        self.settings = settings or get_settings()
        self.detector = detector or ColumnDetector(self.settings)
        self.min_blocks = self.settings.section_min_blocks

    def segment(self, sheet: ParsedSheet) -> List[SheetBlock]:
        label_col = self.detector.find_label_column(sheet, 1, sheet.max_row + 1)
        blocks: List[SheetBlock] = []
        gap_start: Optional[int] = None

        for row in range(1, sheet.max_row + 1):
            if sheet.row_is_empty(row):
                if gap_start is None:
                    gap_start = row
                continue

            if gap_start is not None and row - gap_start >= self.settings.section_gap_rows and blocks:
                blocks[-1] = self._close(blocks[-1], gap_start)
            gap_start = None

            label = sheet.text(row, label_col)
            if label and SECTION_PATTERN.search(label) and not LINE_ITEM_VOCABULARY.search(label):
                if blocks:
                    blocks[-1] = self._close(blocks[-1], row)
                blocks.append(SheetBlock(
                    name=label,
                    sheet_name=sheet.name,
                    start_row=row,
                    end_row=sheet.max_row + 1,
                ))

        return blocks

    @staticmethod
    def _close(block: SheetBlock, end_row: int) -> SheetBlock:
        # A block already closed by a gap keeps its earlier end
        return SheetBlock(
            name=block.name,
            sheet_name=block.sheet_name,
            start_row=block.start_row,
            end_row=min(block.end_row, end_row),
        )


class WholeSheetStrategy:
    """The entire sheet as one block."""

    name = "whole_sheet"
    min_blocks = 1

    def __init__(self, display_name: Optional[str] = None, single_sheet: bool = False):
        self.display_name = display_name
        self.single_sheet = single_sheet

    def segment(self, sheet: ParsedSheet) -> List[SheetBlock]:
        return [SheetBlock(
            name=self.block_name(sheet),
            sheet_name=sheet.name,
            start_row=1,
            end_row=sheet.max_row + 1,
        )]

    def block_name(self, sheet: ParsedSheet) -> str:
        """Sheet name, or the upload's file name for single-sheet workbooks."""
        if self.single_sheet and self.display_name:
            stem = re.sub(r"\.[^.]+$", "", self.display_name)
            stem = re.sub(r"[-_]", " ", stem).strip()
            if stem:
                return stem
        return sheet.name


@dataclass(frozen=True)
class SegmentationOutcome:
    """Blocks of one sheet and the strategy that produced them."""
    strategy: str
    blocks: List[SheetBlock]


class BlockSegmenter:
    """Runs segmentation strategies in order until one yields blocks."""

    def __init__(self, strategies: Sequence[SegmentationStrategy]):
        self.strategies = list(strategies)

    def segment(self, sheet: ParsedSheet) -> SegmentationOutcome:
        for strategy in self.strategies:
            blocks = strategy.segment(sheet)
            if blocks and len(blocks) >= strategy.min_blocks:
                logger.info(
                    "Sheet segmented",
                    sheet=sheet.name,
                    strategy=strategy.name,
                    blocks=len(blocks),
                )
                return SegmentationOutcome(strategy=strategy.name, blocks=blocks)

        logger.warning("No segmentation strategy produced blocks", sheet=sheet.name)
        return SegmentationOutcome(strategy="none", blocks=[])


def default_segmenter(
    display_name: Optional[str] = None,
    single_sheet: bool = False,
    settings: Optional[Settings] = None,
) -> BlockSegmenter:
    """Build the standard marker → section → whole-sheet chain."""
    settings = settings or get_settings()
    return BlockSegmenter([
        MarkerRowStrategy(settings),
        SectionHeadingStrategy(settings),
        WholeSheetStrategy(display_name=display_name, single_sheet=single_sheet),
    ])

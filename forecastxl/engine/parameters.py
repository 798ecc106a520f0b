"""
Input parameter extraction for the ForecastXL Engine.

Deal constants (share counts, warrant terms, multiples) usually sit in a
small label/value area above the first model block. They are workbook-wide:
the first sheet that supplies any of them defines the set for every block.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog

from forecastxl.engine.mapping import normalize_label
from forecastxl.engine.models import InputParameters
from forecastxl.services.excel_parser import ParsedSheet

logger = structlog.get_logger(__name__)


class ValueMode(str, Enum):
    """Which value column(s) a parameter row feeds."""
    FIRST = "first"                  # v1
    PAIR = "pair"                    # v1 -> count, v2 -> price
    PREFER_SECOND = "prefer_second"  # v2, else v1


@dataclass(frozen=True)
class ParameterRule:
    """Substring rule mapping a label to one or two parameters."""
    keywords: Tuple[str, ...]
    mode: ValueMode
    targets: Tuple[str, ...]
    exclude: Tuple[str, ...] = ()

    def matches(self, label: str) -> bool:
        if any(word in label for word in self.exclude):
            return False
        return any(word in label for word in self.keywords)


# Order matters: "number of ord shares completion" must win over "number of ord shares"
PARAMETER_RULES: Tuple[ParameterRule, ...] = (
    ParameterRule(
        keywords=("number of ord shares completion", "antall ordinære aksjer ved closing"),
        mode=ValueMode.FIRST,
        targets=("shares_completion",),
    ),
    ParameterRule(
        keywords=("number of ord shares", "antall ordinære aksjer"),
        mode=ValueMode.FIRST,
        targets=("shares_year_end",),
    ),
    ParameterRule(
        keywords=("tso warrants", "tso-warranter"),
        mode=ValueMode.PAIR,
        targets=("tso_warrants_count", "tso_warrants_price"),
        exclude=("share",),
    ),
    ParameterRule(
        keywords=("mip share", "mip andel", "mip-andel"),
        mode=ValueMode.FIRST,
        targets=("mip_share_pct",),
    ),
    ParameterRule(
        keywords=("existing warrants share", "eksisterende warranter"),
        mode=ValueMode.PAIR,
        targets=("existing_warrants_count", "existing_warrants_price"),
    ),
    ParameterRule(
        keywords=("acquired companies multiple", "oppkjøpsmultippel"),
        mode=ValueMode.PREFER_SECOND,
        targets=("acquired_companies_multiple",),
    ),
    ParameterRule(
        keywords=("acquired with shares", "oppkjøp med aksjer"),
        mode=ValueMode.PREFER_SECOND,
        targets=("acquired_with_shares_pct",),
    ),
)


def _apply_rule(rule: ParameterRule, v1: Optional[float], v2: Optional[float], found: Dict[str, float]) -> None:
    if rule.mode == ValueMode.FIRST:
        if v1 is not None:
            found[rule.targets[0]] = v1
    elif rule.mode == ValueMode.PAIR:
        count_key, price_key = rule.targets
        if v1 is not None:
            found[count_key] = v1
        if v2 is not None:
            found[price_key] = v2
    elif rule.mode == ValueMode.PREFER_SECOND:
        value = v2 if v2 is not None else v1
        if value is not None:
            found[rule.targets[0]] = value


def extract_input_parameters(sheet: ParsedSheet, end_row: int, label_column: int) -> InputParameters:
    """
    Scan rows ``[1, end_row)`` for known parameter labels.

    Values are read from the two columns right of the label. Each row feeds
    at most one rule; later rows overwrite earlier ones.

    Args:
        sheet: Decoded worksheet.
        end_row: First row not scanned.
        label_column: Column holding the parameter labels.

    Returns:
        InputParameters with every parameter found.
    """
    found: Dict[str, float] = {}

    for row in range(1, min(end_row, sheet.max_row + 1)):
        label = normalize_label(sheet.text(row, label_column))
        if not label:
            continue

        rule = next((r for r in PARAMETER_RULES if r.matches(label)), None)
        if rule is None:
            continue

        v1 = sheet.number(row, label_column + 1)
        v2 = sheet.number(row, label_column + 2)
        _apply_rule(rule, v1, v2, found)

    if found:
        logger.debug("Input parameters extracted", sheet=sheet.name, parameters=sorted(found))
    return InputParameters(**found)


def enrich_input_parameters(
    sheet: ParsedSheet,
    start_row: int,
    end_row: int,
    label_column: int,
) -> InputParameters:
    """
    Pick up the EV multiple and pref growth rate from model rows.

    Some workbooks keep these next to the ``EV`` / ``Pref`` rows of a block,
    in the column right of the label. The first qualifying row on the sheet
    wins. Merging with parameters from other sheets is left to
    WorkbookParameters.

    Args:
        sheet: Decoded worksheet.
        start_row: First row scanned.
        end_row: Last row scanned (inclusive, capped at the sheet size).
        label_column: Column holding the row labels.

    Returns:
        InputParameters holding only what this sheet contains.
    """
    ev_multiple: Optional[float] = None
    pref_growth_rate: Optional[float] = None

    for row in range(start_row, min(end_row, sheet.max_row) + 1):
        label = normalize_label(sheet.text(row, label_column))

        if label == "ev" and ev_multiple is None:
            value = sheet.number(row, label_column + 1)
            if value is not None and 0 < value < 100:
                ev_multiple = value

        if label.startswith("pref") and pref_growth_rate is None:
            value = sheet.number(row, label_column + 1)
            if value is not None and 0 < value < 1:
                pref_growth_rate = value

    return InputParameters(ev_multiple=ev_multiple, pref_growth_rate=pref_growth_rate)


class WorkbookParameters:
    """
    Accumulates input parameters across the sheets of one workbook.

    The first non-empty extraction defines the parameter set. Enrichment
    only fills gaps. A later sheet disagreeing with an established value
    produces a warning and the first value is kept.
    """

    def __init__(self):
        self.params = InputParameters()
        self.warnings: List[str] = []
        self._sources: Dict[str, str] = {}
        self._extracted = False

    def offer(self, sheet_name: str, params: InputParameters) -> None:
        """Offer the parameters extracted from one sheet's parameter area."""
        if params.is_empty():
            return

        if not self._extracted:
            self._extracted = True
            self._report_conflicts(sheet_name, params)
            self._merge(sheet_name, params)
            logger.info("Input parameters found", sheet=sheet_name, count=len(params.as_dict()))
            return

        self._report_conflicts(sheet_name, params)

    def enrich(self, sheet_name: str, params: InputParameters) -> None:
        """Merge one sheet's enrichment results: gaps are filled, differences warn."""
        self._report_conflicts(sheet_name, params)
        self._merge(sheet_name, params)

    def _merge(self, sheet_name: str, params: InputParameters) -> None:
        current = self.params.as_dict()
        for name, value in params.as_dict().items():
            if name not in current:
                current[name] = value
                self._sources[name] = sheet_name
        self.params = InputParameters(**current)

    def _report_conflicts(self, sheet_name: str, params: InputParameters) -> None:
        current = self.params.as_dict()
        for name, value in params.as_dict().items():
            if name in current and current[name] != value:
                message = (
                    f'Input parameter "{name}" on sheet "{sheet_name}" ({value:g}) '
                    f'conflicts with {current[name]:g} from sheet "{self._sources[name]}". '
                    "Keeping the first value."
                )
                logger.warning(
                    "Conflicting input parameter",
                    parameter=name,
                    sheet=sheet_name,
                    kept=current[name],
                    ignored=value,
                )
                self.warnings.append(message)

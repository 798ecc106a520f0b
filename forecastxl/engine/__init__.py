"""
ForecastXL Engine - financial model extraction from semi-structured workbooks.

Recovers model blocks, fiscal-year columns and financial line items from
spreadsheets laid out by hand, in English or Norwegian.

Key Principles:
1. Deterministic rules only - no statistical table recognition
2. Degrade gracefully - recoverable issues become warnings
3. Explain failures - an empty result carries a structural diagnostic
"""

from forecastxl.engine.orchestrator import ParseEngine, parse_workbook
from forecastxl.engine.models import (
    InputParameters,
    ModelBlock,
    ParseResult,
    Period,
    PeriodField,
)

__all__ = [
    "parse_workbook",
    "ParseEngine",
    "ParseResult",
    "ModelBlock",
    "Period",
    "PeriodField",
    "InputParameters",
]

"""
ForecastXL - financial model extraction from hand-built forecast workbooks.
"""

from forecastxl.engine import ParseEngine, ParseResult, parse_workbook

__version__ = "0.1.0"
__all__ = ["parse_workbook", "ParseEngine", "ParseResult"]

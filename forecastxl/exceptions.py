"""
Custom exceptions for ForecastXL.

Provides a hierarchy of exceptions with error codes for consistent error handling.
Only unrecoverable conditions are raised; everything else is reported as a
parse warning.
"""
from typing import Any, Dict, List, Optional


class ForecastXLError(Exception):
    """
    Base exception for all ForecastXL errors.

    Attributes:
        error_code: Unique error code (e.g., FXL-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "FXL-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Document Decoding Errors (FXL-1XX)
class DocumentDecodeError(ForecastXLError):
    """The uploaded bytes could not be read as a workbook."""
    error_code = "FXL-100"
    http_status = 422

    def __init__(self, message: str = "Failed to decode spreadsheet", **kwargs):
        super().__init__(message, **kwargs)


class EmptyWorkbookError(DocumentDecodeError):
    """Workbook decoded but contains no worksheets."""
    error_code = "FXL-101"
    http_status = 422

    def __init__(self, filename: Optional[str] = None, **kwargs):
        message = "The workbook contains no sheets"
        super().__init__(message, details={"filename": filename}, **kwargs)


# Extraction Errors (FXL-2XX)
class NoModelsFoundError(ForecastXLError):
    """Every segmentation strategy produced zero usable model blocks."""
    error_code = "FXL-200"
    http_status = 422

    def __init__(
        self,
        message: str = "Could not find financial data in the file",
        sheets: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["sheets"] = sheets or []
        super().__init__(message, details=details, **kwargs)

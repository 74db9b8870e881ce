"""
Custom exceptions for the CRS XML Converter.

Provides a hierarchy of exceptions with error codes for consistent error handling.
"""
from typing import Optional, Dict, Any, List


class CRSConverterError(Exception):
    """
    Base exception for all CRS XML Converter errors.

    Attributes:
        error_code: Unique error code (e.g., CRS-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "CRS-000"
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


# Workbook Errors (CRS-1XX)
class WorkbookError(CRSConverterError):
    """Error reading or validating the source workbook."""
    error_code = "CRS-100"
    http_status = 422

    def __init__(self, message: str = "Failed to process workbook", **kwargs):
        super().__init__(message, **kwargs)


class MissingSheetError(WorkbookError):
    """One or more required sheets are absent from the workbook."""
    error_code = "CRS-101"
    http_status = 422

    def __init__(self, missing_sheets: List[str], available: Optional[List[str]] = None, **kwargs):
        self.missing_sheets = list(missing_sheets)
        message = f"Missing required sheet(s): {', '.join(self.missing_sheets)}"
        super().__init__(
            message,
            details={"missing_sheets": self.missing_sheets, "available_sheets": available or []},
            **kwargs,
        )


class WorkbookReadError(WorkbookError):
    """Uploaded bytes could not be read as a workbook."""
    error_code = "CRS-102"
    http_status = 422

    def __init__(self, message: str = "Could not read workbook", **kwargs):
        super().__init__(message, **kwargs)


class InvalidFileTypeError(CRSConverterError):
    """Invalid file type uploaded."""
    error_code = "CRS-103"
    http_status = 400

    def __init__(self, filename: str, expected_types: list, **kwargs):
        message = f"Invalid file type. Expected: {', '.join(expected_types)}"
        super().__init__(message, details={"filename": filename, "expected_types": expected_types}, **kwargs)


class FileTooLargeError(CRSConverterError):
    """File exceeds maximum size limit."""
    error_code = "CRS-104"
    http_status = 413

    def __init__(self, size: int, max_size: int, **kwargs):
        message = f"File too large. Maximum size: {max_size // (1024*1024)}MB"
        super().__init__(message, details={"size": size, "max_size": max_size}, **kwargs)


# Generation Errors (CRS-2XX)
class GenerationError(CRSConverterError):
    """Unexpected failure while assembling the XML document."""
    error_code = "CRS-200"
    http_status = 500

    def __init__(self, message: str = "Failed to generate CRS XML", **kwargs):
        super().__init__(message, **kwargs)


# Consent Errors (CRS-3XX)
class ConsentRequiredError(CRSConverterError):
    """Data processing consent was not given."""
    error_code = "CRS-300"
    http_status = 403

    def __init__(self, **kwargs):
        message = "Consent to process the uploaded data is required"
        super().__init__(message, **kwargs)


# Validation Errors (CRS-7XX)
class ValidationError(CRSConverterError):
    """Input validation failed."""
    error_code = "CRS-700"
    http_status = 400

    def __init__(self, message: str = "Validation failed", errors: list = None, **kwargs):
        details = kwargs.pop("details", {})
        details["errors"] = errors or []
        super().__init__(message, details=details, **kwargs)

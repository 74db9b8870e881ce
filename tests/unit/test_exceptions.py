"""
Unit tests for custom exceptions.

Tests exception hierarchy and error formatting.
"""
import pytest

from backend.exceptions import (
    CRSConverterError,
    ConsentRequiredError,
    FileTooLargeError,
    GenerationError,
    InvalidFileTypeError,
    MissingSheetError,
    ValidationError,
    WorkbookError,
    WorkbookReadError,
)


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    def test_base_exception(self):
        """Test base CRSConverterError."""
        exc = CRSConverterError("Test error")

        assert exc.error_code == "CRS-000"
        assert exc.message == "Test error"
        assert exc.http_status == 500

    def test_workbook_error(self):
        """Test WorkbookError inherits correctly."""
        exc = WorkbookError("Bad workbook")

        assert isinstance(exc, CRSConverterError)
        assert exc.error_code == "CRS-100"
        assert exc.http_status == 422

    @pytest.mark.parametrize("exc,code", [
        (MissingSheetError(["Entity Accounts"]), "CRS-101"),
        (WorkbookReadError(), "CRS-102"),
    ])
    def test_workbook_subclasses(self, exc, code):
        assert isinstance(exc, WorkbookError)
        assert exc.error_code == code
        assert exc.http_status == 422

    def test_generation_error(self):
        exc = GenerationError("boom")

        assert isinstance(exc, CRSConverterError)
        assert exc.error_code == "CRS-200"
        assert exc.http_status == 500

    def test_consent_required(self):
        exc = ConsentRequiredError()

        assert exc.error_code == "CRS-300"
        assert exc.http_status == 403
        assert "Consent" in exc.message


class TestMissingSheetError:
    """Tests for MissingSheetError."""

    def test_names_every_missing_sheet(self):
        exc = MissingSheetError(["Individual Accounts", "Entity Accounts"], available=["Sheet1"])

        assert exc.message == "Missing required sheet(s): Individual Accounts, Entity Accounts"
        assert exc.missing_sheets == ["Individual Accounts", "Entity Accounts"]
        assert exc.details["available_sheets"] == ["Sheet1"]


class TestUploadExceptions:
    """Tests for upload exceptions."""

    def test_invalid_file_type(self):
        """Test InvalidFileTypeError."""
        exc = InvalidFileTypeError("accounts.csv", [".xlsx", ".xlsm"])

        assert exc.error_code == "CRS-103"
        assert exc.http_status == 400
        assert ".xlsx" in exc.message
        assert exc.details["filename"] == "accounts.csv"

    def test_file_too_large(self):
        """Test FileTooLargeError."""
        exc = FileTooLargeError(size=6 * 1024 * 1024, max_size=5 * 1024 * 1024)

        assert exc.error_code == "CRS-104"
        assert exc.http_status == 413
        assert "5MB" in exc.message


class TestValidationError:
    """Tests for validation exception."""

    def test_validation_error(self):
        """Test ValidationError with errors list."""
        errors = [{"field": "receiving_country", "message": "Invalid"}]
        exc = ValidationError("Validation failed", errors=errors)

        assert exc.error_code == "CRS-700"
        assert exc.http_status == 400
        assert exc.details["errors"] == errors


class TestExceptionSerialization:
    """Tests for exception serialization."""

    def test_to_dict(self):
        """Test exception converts to dict."""
        exc = MissingSheetError(["Entity Accounts"])

        result = exc.to_dict()

        assert result["error"] is True
        assert result["error_code"] == "CRS-101"
        assert result["message"] == "Missing required sheet(s): Entity Accounts"
        assert result["details"]["missing_sheets"] == ["Entity Accounts"]

    def test_custom_error_code(self):
        """Test custom error code override."""
        exc = CRSConverterError("Test", error_code="CUSTOM-001")

        assert exc.error_code == "CUSTOM-001"

    def test_exception_can_be_raised(self):
        """Test exceptions can be raised and caught."""
        with pytest.raises(CRSConverterError) as exc_info:
            raise GenerationError("Test")

        assert exc_info.value.message == "Test"

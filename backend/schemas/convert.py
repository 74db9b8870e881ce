"""
Pydantic schemas for conversion API endpoints.

Defines response models for CRS XML conversion.
"""
from datetime import date
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


ResponseFormat = Literal["xml", "json"]


class ConversionResponse(BaseModel):
    """Response model for a completed conversion (JSON format)."""

    xml: str = Field(..., description="Generated CRS XML document")
    filename: str = Field(..., description="Suggested download filename")
    message_ref_id: str = Field(..., description="MessageRefId of the generated message")
    individual_count: int = Field(..., description="Number of individual AccountReports")
    entity_count: int = Field(..., description="Number of entity AccountReports")
    reporting_period: date = Field(..., description="Reporting period end date")
    processing_time_ms: float = Field(..., description="Processing time in milliseconds")


class ErrorResponse(BaseModel):
    """Response model for API errors."""

    error: bool = Field(True, description="Always true for errors")
    error_code: str = Field(..., description="Error code, e.g. CRS-101")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")

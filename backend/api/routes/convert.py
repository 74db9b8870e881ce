"""
Conversion API routes.

Provides the endpoint that turns an uploaded CRS workbook into CRS v2 XML.
"""
import time
from datetime import date
from pathlib import Path
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from backend.config import get_settings
from backend.crs_engine import CRSConfiguration
from backend.exceptions import FileTooLargeError, InvalidFileTypeError
from backend.schemas.convert import ConversionResponse, ErrorResponse, ResponseFormat
from backend.services.conversion_service import ConversionService, get_conversion_service

logger = structlog.get_logger(__name__)

router = APIRouter()


def validate_workbook_file(file: UploadFile) -> None:
    """
    Validate that the uploaded file is an Excel workbook.

    Raises:
        InvalidFileTypeError: If the extension is not an allowed workbook type.
    """
    allowed = get_settings().allowed_extensions
    extension = Path(file.filename or "").suffix.lower()
    if extension not in allowed:
        raise InvalidFileTypeError(file.filename or "", allowed)


def output_filename(configuration: CRSConfiguration) -> str:
    """Download filename for a generated message."""
    return f"CRS_{configuration.transmitting_country}_{configuration.reporting_year}.xml"


@router.post(
    "/convert",
    response_model=ConversionResponse,
    responses={
        200: {"content": {"application/xml": {}}, "description": "Generated CRS XML"},
        400: {"model": ErrorResponse, "description": "Invalid file or parameters"},
        403: {"model": ErrorResponse, "description": "Consent not given"},
        413: {"model": ErrorResponse, "description": "File too large"},
        422: {"model": ErrorResponse, "description": "Unreadable workbook or missing sheets"},
        500: {"model": ErrorResponse, "description": "Generation error"},
    },
    summary="Convert CRS workbook to XML",
    description=(
        "Upload a workbook with 'Business Information', 'Individual Accounts' and "
        "'Entity Accounts' sheets and receive an OECD CRS v2 XML message. "
        "Nothing is stored."
    ),
)
async def convert_workbook(
    file: UploadFile = File(..., description="CRS workbook (.xlsx)"),
    consent: bool = Form(..., description="User consents to processing of the uploaded data"),
    reporting_period: Optional[date] = Form(None, description="Reporting period end date (YYYY-MM-DD)"),
    transmitting_country: Optional[str] = Form(None, description="Two-letter transmitting country"),
    receiving_country: Optional[str] = Form(None, description="Two-letter receiving country"),
    message_type_indic: Optional[str] = Form(None, description="CRS701, CRS702 or CRS703"),
    response_format: ResponseFormat = Form("xml", description="'xml' for a download, 'json' for copy"),
    service: ConversionService = Depends(get_conversion_service),
):
    """
    Convert an uploaded workbook to CRS XML.

    Returns the XML as an attachment, or a JSON body with the XML text and
    account counts when response_format is "json".
    """
    start_time = time.time()

    validate_workbook_file(file)

    # Check file size before reading the upload into memory
    file.file.seek(0, 2)
    file_size = file.file.tell()
    file.file.seek(0)

    max_size = service.settings.max_upload_size_bytes
    if file_size > max_size:
        raise FileTooLargeError(file_size, max_size)

    configuration = service.build_configuration(
        reporting_period=reporting_period,
        transmitting_country=transmitting_country,
        receiving_country=receiving_country,
        message_type_indic=message_type_indic,
    )

    data = await file.read()
    document = await run_in_threadpool(
        service.convert,
        data,
        configuration,
        consent,
        file.filename,
    )

    processing_time_ms = (time.time() - start_time) * 1000
    filename = output_filename(configuration)

    logger.info(
        "Workbook converted",
        filename=file.filename,
        individual_accounts=document.individual_count,
        entity_accounts=document.entity_count,
        processing_time_ms=round(processing_time_ms, 2),
    )

    if response_format == "json":
        return ConversionResponse(
            xml=document.xml,
            filename=filename,
            message_ref_id=document.message_ref_id,
            individual_count=document.individual_count,
            entity_count=document.entity_count,
            reporting_period=configuration.reporting_period,
            processing_time_ms=processing_time_ms,
        )

    return Response(
        content=document.xml,
        media_type="application/xml",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Individual-Count": str(document.individual_count),
            "X-Entity-Count": str(document.entity_count),
        },
    )

"""
Conversion service.

Boundary between uploaded bytes and the CRS Engine: applies the consent gate
and size limit, reads the workbook, and runs generation.
"""
from datetime import date
from typing import Optional

import structlog

from backend.config import Settings, get_settings
from backend.crs_engine import CRSConfiguration, GeneratedDocument, generate
from backend.crs_engine.models import MessageTypeIndic
from backend.exceptions import ConsentRequiredError, FileTooLargeError, ValidationError
from backend.services.workbook_reader import WorkbookReader, get_workbook_reader

logger = structlog.get_logger(__name__)

MESSAGE_TYPE_INDICS = [indic.value for indic in MessageTypeIndic]


class ConversionService:
    """
    Service that converts an uploaded workbook into CRS XML.

    Nothing is persisted: the bytes are read into memory, converted, and the
    document is returned to the caller.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        reader: Optional[WorkbookReader] = None,
    ):
        self.settings = settings or get_settings()
        self.reader = reader or get_workbook_reader()

    def build_configuration(
        self,
        reporting_period: Optional[date] = None,
        transmitting_country: Optional[str] = None,
        receiving_country: Optional[str] = None,
        message_type_indic: Optional[str] = None,
    ) -> CRSConfiguration:
        """
        Merge request overrides with the configured defaults.

        The reporting period defaults to 31 December of the previous year.
        """
        errors = []
        transmitting = (transmitting_country or self.settings.transmitting_country).strip().upper()
        receiving = (receiving_country or self.settings.receiving_country).strip().upper()

        for field_name, code in (("transmitting_country", transmitting), ("receiving_country", receiving)):
            if len(code) != 2 or not code.isalpha():
                errors.append({"field": field_name, "message": f"'{code}' is not a two-letter country code"})

        indic = (message_type_indic or self.settings.message_type_indic).strip().upper()
        if indic not in MESSAGE_TYPE_INDICS:
            errors.append({
                "field": "message_type_indic",
                "message": f"'{indic}' is not one of {', '.join(MESSAGE_TYPE_INDICS)}",
            })

        if errors:
            raise ValidationError("Invalid conversion parameters", errors=errors)

        if reporting_period is None:
            reporting_period = date(date.today().year - 1, 12, 31)

        return CRSConfiguration(
            transmitting_country=transmitting,
            receiving_country=receiving,
            reporting_period=reporting_period,
            message_type=self.settings.message_type,
            message_type_indic=indic,
            doc_type_indic=self.settings.doc_type_indic,
        )

    def convert(
        self,
        data: bytes,
        configuration: CRSConfiguration,
        consent: bool,
        filename: Optional[str] = None,
    ) -> GeneratedDocument:
        """
        Convert workbook bytes to a CRS XML document.

        Args:
            data: Raw workbook bytes.
            configuration: Run configuration.
            consent: Whether the user agreed to have the data processed.
            filename: Original filename, for logging.

        Raises:
            ConsentRequiredError: If consent is False.
            FileTooLargeError: If data exceeds the upload limit.
            WorkbookReadError, MissingSheetError, GenerationError: From the
                reader and engine.
        """
        if not consent:
            raise ConsentRequiredError()

        if len(data) > self.settings.max_upload_size_bytes:
            raise FileTooLargeError(len(data), self.settings.max_upload_size_bytes)

        workbook = self.reader.read(data, filename=filename)
        document = generate(workbook, configuration)

        logger.info(
            "Conversion complete",
            filename=filename,
            size=len(data),
            individual_accounts=document.individual_count,
            entity_accounts=document.entity_count,
        )
        return document


def get_conversion_service() -> ConversionService:
    """Get ConversionService instance."""
    return ConversionService()

"""
Orchestrator for the CRS Engine.

Main entry point that turns a workbook snapshot into a CRS XML document:
Step 1: Verify required sheets
Step 2: Build BusinessInfo
Step 3: Filter data rows from both account sheets
Step 4: Assemble MessageSpec, ReportingFI and AccountReports
Step 5: Return the document with its account counts

The orchestrator performs no I/O; it is a pure function of its inputs.
"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional

import structlog

from backend.crs_engine.columns import ENTITY_COLUMNS, INDIVIDUAL_COLUMNS, row_width
from backend.crs_engine.field_mapper import FieldMapper, ReferenceIdGenerator
from backend.crs_engine.models import (
    REQUIRED_SHEETS,
    CRSConfiguration,
    GeneratedDocument,
    SheetName,
    TabularWorkbook,
)
from backend.crs_engine.record_filter import build_business_info, filter_data_rows
from backend.crs_engine.xml_assembler import XmlAssembler
from backend.exceptions import CRSConverterError, GenerationError, MissingSheetError

logger = structlog.get_logger(__name__)


def check_required_sheets(workbook: TabularWorkbook) -> None:
    """Raise MissingSheetError naming every required sheet that is absent."""
    missing = [sheet.value for sheet in REQUIRED_SHEETS if not workbook.has_sheet(sheet.value)]
    if missing:
        raise MissingSheetError(missing, available=list(workbook.sheet_names))


def generate(
    workbook: TabularWorkbook,
    configuration: CRSConfiguration,
    clock: Optional[Callable[[], datetime]] = None,
) -> GeneratedDocument:
    """
    Generate a CRS v2 XML document from a workbook snapshot.

    Args:
        workbook: Immutable snapshot of the source workbook.
        configuration: Countries, message type and reporting period.
        clock: Optional timestamp source for the MessageSpec.

    Returns:
        GeneratedDocument with the XML text and individual/entity counts.

    Raises:
        MissingSheetError: One or more required sheets are absent.
        GenerationError: Any other failure while assembling the document.
    """
    run_id = str(uuid.uuid4())[:8]

    logger.info(
        "Starting CRS generation",
        run_id=run_id,
        transmitting_country=configuration.transmitting_country,
        receiving_country=configuration.receiving_country,
        reporting_period=configuration.reporting_period.isoformat(),
    )

    # Structural problems fail before any XML is built
    check_required_sheets(workbook)

    try:
        business_info = build_business_info(workbook.rows(SheetName.BUSINESS_INFORMATION.value))

        individual_rows = filter_data_rows(workbook.rows(SheetName.INDIVIDUAL_ACCOUNTS.value))
        entity_rows = filter_data_rows(workbook.rows(SheetName.ENTITY_ACCOUNTS.value))

        _log_short_rows(run_id, "individual", individual_rows, row_width(INDIVIDUAL_COLUMNS))
        _log_short_rows(run_id, "entity", entity_rows, row_width(ENTITY_COLUMNS))

        assembler = XmlAssembler(
            configuration,
            field_mapper=FieldMapper(ReferenceIdGenerator()),
            clock=clock,
        )

        message_spec = assembler.build_message_spec(business_info)
        reporting_fi = assembler.build_reporting_fi(business_info)

        reports = [assembler.build_individual_report(row) for row in individual_rows]
        reports.extend(assembler.build_entity_report(row) for row in entity_rows)

        root = assembler.build_document(message_spec, reporting_fi, reports)
        xml_text = assembler.render(root)

    except CRSConverterError:
        raise
    except Exception as e:
        logger.error(
            "CRS generation failed",
            run_id=run_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise GenerationError(str(e)) from e

    result = GeneratedDocument(
        xml=xml_text,
        individual_count=len(individual_rows),
        entity_count=len(entity_rows),
        message_ref_id=assembler.message_ref_id,
    )

    logger.info(
        "CRS generation complete",
        run_id=run_id,
        individual_accounts=result.individual_count,
        entity_accounts=result.entity_count,
        message_ref_id=result.message_ref_id,
    )

    return result


def _log_short_rows(run_id: str, sheet: str, rows: List, width: int) -> None:
    """Warn when data rows are narrower than the sheet's column contract."""
    short = sum(1 for row in rows if len(row) < width)
    if short:
        logger.warning(
            "Data rows shorter than column contract; missing cells use defaults",
            run_id=run_id,
            sheet=sheet,
            short_rows=short,
            expected_width=width,
        )

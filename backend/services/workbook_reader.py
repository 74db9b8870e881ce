"""
Workbook reader service.

Reads uploaded Excel bytes into an immutable TabularWorkbook snapshot for the
CRS Engine.
"""
import io
import zipfile
from typing import Any, Optional, Tuple
from xml.etree.ElementTree import ParseError

import structlog
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from backend.crs_engine.models import TabularWorkbook
from backend.exceptions import WorkbookReadError

logger = structlog.get_logger(__name__)

UNREADABLE_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    ParseError,
    KeyError,
    ValueError,
    OSError,
)


class WorkbookReader:
    """
    Service for reading CRS source workbooks.

    Keeps every sheet in source order and every row as a tuple of cached cell
    values (formulas resolved to their last computed value). Trailing empty
    cells are trimmed so a blank row becomes an empty tuple.
    """

    def read(self, data: bytes, filename: Optional[str] = None) -> TabularWorkbook:
        """
        Read workbook bytes.

        Args:
            data: Raw .xlsx/.xlsm content.
            filename: Original filename, used for logging only.

        Returns:
            TabularWorkbook snapshot of all sheets.

        Raises:
            WorkbookReadError: If the bytes are not a readable workbook.
        """
        try:
            wb = load_workbook(filename=io.BytesIO(data), read_only=True, data_only=True)
        except UNREADABLE_ERRORS as e:
            raise _unreadable(filename, e) from e

        # Read-only sheets are parsed lazily, so corrupt sheet XML surfaces here
        try:
            sheets = {ws.title: self._read_sheet(ws) for ws in wb.worksheets}
        except UNREADABLE_ERRORS as e:
            raise _unreadable(filename, e) from e
        finally:
            wb.close()

        logger.info(
            "Workbook read",
            filename=filename,
            sheets=len(sheets),
            rows=sum(len(rows) for rows in sheets.values()),
        )

        return TabularWorkbook(sheets=sheets)

    def _read_sheet(self, ws) -> Tuple[Tuple[Any, ...], ...]:
        """Read all rows of a worksheet as value tuples."""
        return tuple(_trim(row) for row in ws.iter_rows(values_only=True))


def _unreadable(filename: Optional[str], error: Exception) -> WorkbookReadError:
    logger.warning(
        "Workbook could not be read",
        filename=filename,
        error_type=type(error).__name__,
        error=str(error),
    )
    return WorkbookReadError(
        "Could not read workbook. Upload an .xlsx file.",
        details={"filename": filename, "reason": str(error)},
    )


def _trim(row: Tuple[Any, ...]) -> Tuple[Any, ...]:
    """Drop trailing None cells."""
    end = len(row)
    while end and row[end - 1] is None:
        end -= 1
    return tuple(row[:end])


def get_workbook_reader() -> WorkbookReader:
    """Get WorkbookReader instance."""
    return WorkbookReader()

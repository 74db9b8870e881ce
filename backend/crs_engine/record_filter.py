"""
Row classification for the CRS Engine.

Separates data rows from headers and blanks on the account sheets, and
turns "Business Information" label/value rows into a keyed mapping.
"""

import re
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

import structlog

logger = structlog.get_logger(__name__)

NON_ALPHA_PATTERN = re.compile(r"[^a-z]")


def is_data_row(row: Optional[Sequence[Any]]) -> bool:
    """
    A data row has more than one cell and a numeric first cell.

    The first cell is a row sequence number; header and blank rows fail the
    numeric test and are skipped without error.
    """
    if not row or len(row) <= 1:
        return False
    first = row[0]
    if isinstance(first, bool):
        return False
    return isinstance(first, (int, float, Decimal))


def filter_data_rows(rows: Iterable[Optional[Sequence[Any]]]) -> List[Sequence[Any]]:
    """Return the data rows of a sheet in source order."""
    data_rows = []
    skipped = 0
    for row in rows:
        if is_data_row(row):
            data_rows.append(row)
        else:
            skipped += 1

    if skipped:
        logger.debug("Skipped non-data rows", skipped=skipped, kept=len(data_rows))
    return data_rows


def normalize_label(label: Any) -> str:
    """Lower-case a label and strip everything but letters ("Post Code:" -> "postcode")."""
    if label is None:
        return ""
    return NON_ALPHA_PATTERN.sub("", str(label).lower())


def build_business_info(rows: Iterable[Optional[Sequence[Any]]]) -> Dict[str, Any]:
    """Build the institution metadata mapping from label/value rows."""
    info: Dict[str, Any] = {}
    for row in rows:
        if not row or len(row) < 2:
            continue
        key = normalize_label(row[0])
        if not key:
            continue
        info[key] = row[1]
    return info

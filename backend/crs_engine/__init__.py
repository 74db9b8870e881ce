"""
CRS Engine - Spreadsheet to OECD Common Reporting Standard XML.

Turns a three-sheet workbook (institution metadata, individual accounts,
entity accounts) into a CRS v2 XML message.

Key Principles:
1. Pure transformation - no I/O, no state shared between runs
2. Lenient rows, strict structure - malformed rows are skipped, missing
   sheets abort the run
3. Defaults over failures - empty fields resolve to "", "0.00", "Unknown", "USD"
"""

from backend.crs_engine.orchestrator import generate
from backend.crs_engine.models import (
    CRSConfiguration,
    GeneratedDocument,
    SheetName,
    TabularWorkbook,
)

__version__ = "1.0.0"
__all__ = [
    "generate",
    "CRSConfiguration",
    "GeneratedDocument",
    "SheetName",
    "TabularWorkbook",
]

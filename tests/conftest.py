"""
Pytest configuration and fixtures.
"""
import io
from typing import Callable, Dict, Generator, List, Sequence

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from backend.main import app


BUSINESS_ROWS = [
    ["Business Information", None],
    ["TIN", "11223344"],
    ["Name", "Acme Bank Ltd"],
    ["Residence Country", "Mauritius - MU"],
    ["Street", "1 Royal Road"],
    ["Post Code", "11302"],
    ["City", "Port Louis"],
    ["Country", "Mauritius - MU"],
]

INDIVIDUAL_ROWS = [
    ["No.", "Account Number", "Account Number Type", "Undocumented Account", "Residence Country"],
    [
        1, "IND-001", "OECD601 - IBAN", "No", "Mauritius - MU", "MU-TIN-001", "Mauritius - MU",
        "Jane", "Doe", "12 Rue Desforges", None, None, None, "11328", "Port Louis", "Mauritius - MU",
        32874, "Curepipe", "Mauritius - MU", 1234.5, "US Dollar - USD", 10,
    ],
    [
        2, "IND-002", "OECD605 - Other", "Yes", "France - FR", "FR-TIN-002", "France - FR",
        "Marc", "Leroy", None, None, None, None, None, "Paris", "France - FR",
        "1982-03-14", None, "France - FR", 700, "Euro - EUR", None,
    ],
]

ENTITY_ROWS = [
    ["No.", "Account Number", "Account Number Type", "Undocumented Account", "Entity Name"],
    [
        1, "ENT-001", "OECD605 - Other", "No", "Harbour Holdings Ltd", "Mauritius - MU", "C07012345",
        "Mauritius - MU", "2 Harbour Road", None, None, None, "11000", "Port Louis", "Mauritius - MU",
        "CRS101 - Passive NFE", 50000, "Euro - EUR", 250.75,
        "John", "Smith", "France - FR", "FR-TIN-9", "France - FR", "5 Rue de Rivoli", None, "75001",
        "Paris", "France - FR", "1975-06-15", "Lyon", "France - FR", "CRS801 - Ownership",
    ],
]


def build_xlsx(sheets: Dict[str, Sequence[Sequence]]) -> bytes:
    """Write sheets of rows to an in-memory .xlsx file."""
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client."""
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def xlsx_factory() -> Callable[[Dict[str, List]], bytes]:
    """Build .xlsx bytes from a mapping of sheet name to rows."""
    return build_xlsx


@pytest.fixture
def crs_workbook_bytes() -> bytes:
    """A complete CRS workbook with two individual and one entity account."""
    return build_xlsx({
        "Business Information": BUSINESS_ROWS,
        "Individual Accounts": INDIVIDUAL_ROWS,
        "Entity Accounts": ENTITY_ROWS,
    })


@pytest.fixture
def crs_namespaces() -> Dict[str, str]:
    """Prefixes for ElementTree lookups on generated documents."""
    return {
        "crs": "urn:oecd:ties:crs:v2",
        "cfc": "urn:oecd:ties:commontypesfatcacrs:v2",
        "stf": "urn:oecd:ties:crsstf:v5",
    }

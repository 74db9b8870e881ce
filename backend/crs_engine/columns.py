"""
Column contracts for the CRS source workbook.

Account sheets are read by fixed position. Each sheet's offsets live in a
single frozen table so the layout can be swapped for a validated
named-column schema without touching the assembler.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Sequence


@dataclass(frozen=True)
class IndividualColumns:
    """Offsets into an "Individual Accounts" data row."""
    sequence: int = 0
    account_number: int = 1
    account_number_type: int = 2
    undocumented_account: int = 3
    residence_country: int = 4
    tin: int = 5
    tin_issued_by: int = 6
    first_name: int = 7
    last_name: int = 8
    street: int = 9
    building_identifier: int = 10
    floor_identifier: int = 11
    district_name: int = 12
    post_code: int = 13
    city: int = 14
    address_country: int = 15
    birth_date: int = 16
    birth_city: int = 17
    birth_country: int = 18
    account_balance: int = 19
    currency: int = 20
    payment_amount: int = 21


@dataclass(frozen=True)
class ControllingPersonColumns:
    """Offsets of the controlling person nested in an entity row."""
    first_name: int = 19
    last_name: int = 20
    residence_country: int = 21
    tin: int = 22
    tin_issued_by: int = 23
    street: int = 24
    building_identifier: int = 25
    post_code: int = 26
    city: int = 27
    address_country: int = 28
    birth_date: int = 29
    birth_city: int = 30
    birth_country: int = 31
    person_type: int = 32


@dataclass(frozen=True)
class EntityColumns:
    """Offsets into an "Entity Accounts" data row."""
    sequence: int = 0
    account_number: int = 1
    account_number_type: int = 2
    undocumented_account: int = 3
    entity_name: int = 4
    residence_country: int = 5
    identifying_number: int = 6
    in_issued_by: int = 7
    street: int = 8
    building_identifier: int = 9
    floor_identifier: int = 10
    district_name: int = 11
    post_code: int = 12
    city: int = 13
    address_country: int = 14
    account_holder_type: int = 15
    account_balance: int = 16
    currency: int = 17
    payment_amount: int = 18
    controlling_person: ControllingPersonColumns = ControllingPersonColumns()


INDIVIDUAL_COLUMNS = IndividualColumns()
ENTITY_COLUMNS = EntityColumns()
CONTROLLING_PERSON_COLUMNS = ENTITY_COLUMNS.controlling_person

# Normalized "Business Information" keys read by the assembler
BUSINESS_INFO_KEYS: Dict[str, str] = {
    "tin": "tin",
    "name": "name",
    "residence_country": "residencecountry",
    "street": "street",
    "building_identifier": "buildingidentifier",
    "post_code": "postcode",
    "city": "city",
    "address_country": "country",
}


def cell(row: Sequence[Any], index: int) -> Any:
    """Return the cell at ``index`` or None when the row is too short."""
    if row is None or index < 0 or index >= len(row):
        return None
    return row[index]


def as_text(value: Any) -> str:
    """Render a raw cell value as stripped text ("" when absent)."""
    if value is None:
        return ""
    # Spreadsheets hand back identifiers like 11223344 as floats
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def text(row: Sequence[Any], index: int) -> str:
    """Return the cell at ``index`` as stripped text."""
    return as_text(cell(row, index))


def row_width(columns: Any) -> int:
    """Number of cells a complete row needs for the given contract."""
    width = 0
    for f in fields(columns):
        value = getattr(columns, f.name)
        if isinstance(value, int):
            width = max(width, value + 1)
        else:
            width = max(width, row_width(value))
    return width

"""
Data structures for the CRS Engine.

Holds the immutable inputs of a generation run and its derived output:
- CRSConfiguration supplied by the caller
- TabularWorkbook snapshot of the three source sheets
- ParsedCode tagged result of compound display-value parsing
- GeneratedDocument returned to the caller
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


Row = Tuple[Any, ...]


class SheetName(str, Enum):
    """Sheets the engine requires in every workbook."""
    BUSINESS_INFORMATION = "Business Information"
    INDIVIDUAL_ACCOUNTS = "Individual Accounts"
    ENTITY_ACCOUNTS = "Entity Accounts"


REQUIRED_SHEETS: Tuple[SheetName, ...] = (
    SheetName.BUSINESS_INFORMATION,
    SheetName.INDIVIDUAL_ACCOUNTS,
    SheetName.ENTITY_ACCOUNTS,
)


class MessageTypeIndic(str, Enum):
    """CRS message type indicators."""
    NEW_DATA = "CRS701"
    CORRECTIONS = "CRS702"
    NIL_REPORT = "CRS703"


class DocTypeIndic(str, Enum):
    """OECD document type indicators used inside every DocSpec."""
    NEW = "OECD1"
    CORRECTED = "OECD2"
    DELETED = "OECD3"
    TEST_NEW = "OECD11"
    TEST_CORRECTED = "OECD12"
    TEST_DELETED = "OECD13"


@dataclass(frozen=True)
class CRSConfiguration:
    """Caller-supplied settings for a single generation run."""
    transmitting_country: str
    receiving_country: str
    reporting_period: date
    message_type: str = "CRS"
    message_type_indic: str = MessageTypeIndic.NEW_DATA.value
    doc_type_indic: str = DocTypeIndic.NEW.value

    @property
    def reporting_year(self) -> int:
        return self.reporting_period.year


@dataclass(frozen=True)
class TabularWorkbook:
    """
    Immutable snapshot of a source workbook.

    Each sheet is an ordered tuple of rows; each row is a tuple of raw cell
    values exactly as read from the spreadsheet.
    """
    sheets: Mapping[str, Tuple[Row, ...]] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, sheets: Mapping[str, Any]) -> "TabularWorkbook":
        """Build a snapshot from any mapping of sheet name to row iterables."""
        return cls(
            sheets={
                name: tuple(tuple(row) if row is not None else () for row in rows)
                for name, rows in sheets.items()
            }
        )

    @property
    def sheet_names(self) -> Tuple[str, ...]:
        return tuple(self.sheets.keys())

    def has_sheet(self, name: str) -> bool:
        return name in self.sheets

    def rows(self, name: str) -> Tuple[Row, ...]:
        return self.sheets.get(name, ())


@dataclass(frozen=True)
class ParsedCode:
    """Result of parsing a compound "<label> - CODE" display value."""
    value: str
    matched: bool
    raw: Optional[str] = None


@dataclass
class GeneratedDocument:
    """A finished CRS XML document with its account counts."""
    xml: str
    individual_count: int
    entity_count: int
    message_ref_id: str = ""

    @property
    def total_accounts(self) -> int:
        return self.individual_count + self.entity_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xml": self.xml,
            "individual_count": self.individual_count,
            "entity_count": self.entity_count,
            "message_ref_id": self.message_ref_id,
        }

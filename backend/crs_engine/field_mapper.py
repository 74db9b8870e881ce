"""
Field mapping primitives for the CRS Engine.

Normalizes raw spreadsheet cells into the lexical forms the CRS schema
expects:
- Country and currency codes from "<label> - CODE" display values
- Calendar dates from native dates, date strings, or spreadsheet day serials
- Fixed two-decimal monetary amounts
- Reference identifiers unique within one generation run
"""

import re
import uuid
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any, Optional, Pattern, Set

import structlog

from backend.crs_engine.models import ParsedCode

logger = structlog.get_logger(__name__)


# Spreadsheet day serial of 1970-01-01
SERIAL_EPOCH_OFFSET = 25569
MS_PER_DAY = 86_400_000
UNIX_EPOCH = datetime(1970, 1, 1)

DEFAULT_CURRENCY = "USD"
ZERO_AMOUNT = "0.00"
CENTS = Decimal("0.01")
DEFAULT_PRECISION = 28
# Largest magnitude a spreadsheet cell can hold is about 1.8e308
MAX_AMOUNT_EXPONENT = 308

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y-%m-%d %H:%M:%S",
]

TRUE_VALUES = {"yes", "y", "true", "1"}


class ReferenceIdGenerator:
    """
    Issues reference identifiers for a single generation run.

    Identifiers are ``prefix`` followed by a 16-character hex suffix taken
    from a random UUID. Uniqueness holds within one generator only; the
    suffix is not suitable for security purposes.
    """

    SUFFIX_LENGTH = 16

    def __init__(self):
        self._issued: Set[str] = set()

    def next_id(self, prefix: str) -> str:
        while True:
            candidate = f"{prefix}{uuid.uuid4().hex[:self.SUFFIX_LENGTH].upper()}"
            if candidate not in self._issued:
                self._issued.add(candidate)
                return candidate

    @property
    def issued_count(self) -> int:
        return len(self._issued)


class FieldMapper:
    """
    Normalization primitives shared by every XML fragment.

    All methods except ``generate_id`` are pure. ``generate_id`` draws from a
    run-scoped ReferenceIdGenerator, so one FieldMapper is created per run.
    """

    COUNTRY_PATTERN: Pattern = re.compile(r"-\s*([A-Z]{2})\s*$")
    CURRENCY_PATTERN: Pattern = re.compile(r"-\s*([A-Z]{3})\s*$")
    CODE_SEPARATOR = " - "

    def __init__(self, id_generator: Optional[ReferenceIdGenerator] = None):
        self._ids = id_generator or ReferenceIdGenerator()

    # =========================================================================
    # Compound codes
    # =========================================================================

    def parse_compound_code(self, raw: Any, pattern: Pattern) -> ParsedCode:
        """
        Parse a "<label> - CODE" display value.

        Returns a ParsedCode whose ``matched`` flag tells a parsed code apart
        from a passthrough of the raw input.
        """
        if raw is None:
            return ParsedCode(value="", matched=False, raw=None)

        text = str(raw).strip()
        match = pattern.search(text)
        if match:
            return ParsedCode(value=match.group(1), matched=True, raw=text)
        return ParsedCode(value=text, matched=False, raw=text)

    def parse_country_code(self, raw: Any) -> str:
        """Extract a two-letter country code, passing unmatched input through."""
        return self.parse_compound_code(raw, self.COUNTRY_PATTERN).value

    def parse_currency_code(self, raw: Any) -> str:
        """Extract a three-letter currency code, defaulting to USD."""
        parsed = self.parse_compound_code(raw, self.CURRENCY_PATTERN)
        if not parsed.matched:
            return DEFAULT_CURRENCY
        return parsed.value

    def parse_code_prefix(self, raw: Any, default: str) -> str:
        """Keep the code before " - " in a compound value ("CRS101 - Passive NFE")."""
        if raw is None:
            return default
        code = str(raw).split(self.CODE_SEPARATOR)[0].strip()
        return code or default

    # =========================================================================
    # Dates
    # =========================================================================

    def format_date(self, raw: Any) -> str:
        """
        Format a date cell as YYYY-MM-DD.

        Accepts date/datetime values, date-like strings, and spreadsheet day
        serials. Serials are shifted from the 1900 epoch to the Unix epoch with
        no timezone correction. Returns "" for absent or unrecognized input.
        """
        if raw is None or isinstance(raw, bool):
            return ""

        if isinstance(raw, datetime):
            return raw.date().isoformat()
        if isinstance(raw, date):
            return raw.isoformat()

        if isinstance(raw, (int, float, Decimal)):
            return self._format_serial(raw)

        text = str(raw).strip()
        if not text:
            return ""

        try:
            return datetime.fromisoformat(text).date().isoformat()
        except ValueError:
            pass

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date().isoformat()
            except ValueError:
                continue

        logger.debug("Unrecognized date value", length=len(text))
        return ""

    def _format_serial(self, serial: Any) -> str:
        try:
            millis = (float(serial) - SERIAL_EPOCH_OFFSET) * MS_PER_DAY
            return (UNIX_EPOCH + timedelta(milliseconds=millis)).date().isoformat()
        except (OverflowError, ValueError):
            return ""

    # =========================================================================
    # Amounts and flags
    # =========================================================================

    def format_amount(self, raw: Any) -> str:
        """Render an amount with exactly two decimals ("0.00" when not numeric)."""
        if raw is None or isinstance(raw, bool):
            return ZERO_AMOUNT

        text = str(raw).strip().replace(",", "")
        if not text or text.lower() == "null":
            return ZERO_AMOUNT

        try:
            value = Decimal(text)
        except InvalidOperation:
            return ZERO_AMOUNT

        if not value.is_finite():
            return ZERO_AMOUNT
        if value.adjusted() > MAX_AMOUNT_EXPONENT:
            logger.warning("Amount out of range", digits=value.adjusted() + 1)
            return ZERO_AMOUNT

        # Precision must cover every integer digit plus the two decimals
        context = Context(prec=max(DEFAULT_PRECISION, value.adjusted() + 3))
        return str(value.quantize(CENTS, rounding=ROUND_HALF_UP, context=context))

    def format_bool(self, raw: Any) -> str:
        """Map spreadsheet truthiness (Yes/Y/True/1) to an XML boolean."""
        if isinstance(raw, bool):
            return "true" if raw else "false"
        if raw is None:
            return "false"
        if isinstance(raw, (int, float, Decimal)):
            return "true" if raw else "false"
        return "true" if str(raw).strip().lower() in TRUE_VALUES else "false"

    # =========================================================================
    # Identifiers
    # =========================================================================

    def generate_id(self, prefix: str) -> str:
        """Return ``prefix`` plus a hex suffix unique within this run."""
        return self._ids.next_id(prefix)

"""
XML assembly for the CRS Engine.

Renders the CRS v2 message from normalized fields:
- MessageSpec (message header)
- CrsBody/ReportingFI (the reporting financial institution)
- CrsBody/ReportingGroup/AccountReport (one per individual or entity row)

Optional address parts are left out when their source cell is empty rather
than emitted as empty elements.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence
from xml.etree import ElementTree as ET

import structlog

from backend.crs_engine.columns import (
    BUSINESS_INFO_KEYS,
    CONTROLLING_PERSON_COLUMNS,
    ENTITY_COLUMNS,
    INDIVIDUAL_COLUMNS,
    as_text,
    cell,
    text,
)
from backend.crs_engine.field_mapper import FieldMapper
from backend.crs_engine.models import CRSConfiguration

logger = structlog.get_logger(__name__)


# =============================================================================
# Namespaces and fixed codes
# =============================================================================

CRS_NS = "urn:oecd:ties:crs:v2"
CFC_NS = "urn:oecd:ties:commontypesfatcacrs:v2"
STF_NS = "urn:oecd:ties:crsstf:v5"
CRS_VERSION = "2.0"

ET.register_namespace("", CRS_NS)
ET.register_namespace("cfc", CFC_NS)
ET.register_namespace("stf", STF_NS)

DEFAULT_ACCT_NUMBER_TYPE = "OECD605"
DEFAULT_ACCT_HOLDER_TYPE = "CRS101"
DEFAULT_CTRLG_PERSON_TYPE = "CRS801"
PAYMENT_TYPE = "CRS502"
NAME_TYPE = "OECD202"
LEGAL_ADDRESS_TYPE = "OECD301"
UNKNOWN_CITY = "Unknown"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
INDENT = "  "


def _crs(tag: str) -> str:
    return f"{{{CRS_NS}}}{tag}"


def _cfc(tag: str) -> str:
    return f"{{{CFC_NS}}}{tag}"


def _stf(tag: str) -> str:
    return f"{{{STF_NS}}}{tag}"


class XmlAssembler:
    """
    Builds CRS v2 XML fragments for one generation run.

    Usage:
        assembler = XmlAssembler(configuration)
        root = assembler.build_document(
            assembler.build_message_spec(business_info),
            assembler.build_reporting_fi(business_info),
            [assembler.build_individual_report(row) for row in rows],
        )
        xml_text = assembler.render(root)
    """

    def __init__(
        self,
        configuration: CRSConfiguration,
        field_mapper: Optional[FieldMapper] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the assembler.

        Args:
            configuration: Run configuration (countries, message type, period).
            field_mapper: Mapper owning the run's identifier generator.
            clock: Source of the MessageSpec timestamp (defaults to UTC now).
        """
        self.config = configuration
        self.mapper = field_mapper or FieldMapper()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.message_ref_id = ""

    # =========================================================================
    # Generic helpers
    # =========================================================================

    def _add(self, parent: ET.Element, tag: str, value: Optional[str] = None, **attrs: str) -> ET.Element:
        """Add a child element with optional text and attributes."""
        elem = ET.SubElement(parent, tag, attrs)
        if value is not None:
            elem.text = value
        return elem

    def _doc_ref_prefix(self, kind: str) -> str:
        return f"{self.config.transmitting_country}{self.config.reporting_year}-{kind}-"

    def _add_doc_spec(self, parent: ET.Element, kind: str) -> str:
        """Append a DocSpec with a fresh DocRefId and return the id."""
        doc_ref_id = self.mapper.generate_id(self._doc_ref_prefix(kind))
        doc_spec = self._add(parent, _crs("DocSpec"))
        self._add(doc_spec, _stf("DocTypeIndic"), self.config.doc_type_indic)
        self._add(doc_spec, _stf("DocRefId"), doc_ref_id)
        return doc_ref_id

    def _add_address(
        self,
        parent: ET.Element,
        country: str,
        street: str = "",
        building: str = "",
        floor: str = "",
        district: str = "",
        post_code: str = "",
        city: str = "",
        legal_address_type: Optional[str] = None,
    ) -> ET.Element:
        """Append an Address with AddressFix, skipping empty optional parts."""
        attrs = {"legalAddressType": legal_address_type} if legal_address_type else {}
        address = self._add(parent, _crs("Address"), **attrs)
        self._add(address, _cfc("CountryCode"), country)
        fix = self._add(address, _cfc("AddressFix"))
        for tag, value in (
            ("Street", street),
            ("BuildingIdentifier", building),
            ("FloorIdentifier", floor),
            ("DistrictName", district),
            ("PostCode", post_code),
        ):
            if value:
                self._add(fix, _cfc(tag), value)
        self._add(fix, _cfc("City"), city or UNKNOWN_CITY)
        return address

    def _add_birth_info(self, parent: ET.Element, birth_date: Any, city: str, country: Any) -> ET.Element:
        birth_info = self._add(parent, _crs("BirthInfo"))
        self._add(birth_info, _crs("BirthDate"), self.mapper.format_date(birth_date))
        if city:
            self._add(birth_info, _crs("City"), city)
        country_info = self._add(birth_info, _crs("CountryInfo"))
        self._add(country_info, _crs("CountryCode"), self.mapper.parse_country_code(country))
        return birth_info

    def _add_account_number(self, parent: ET.Element, row: Sequence[Any], columns: Any) -> ET.Element:
        return self._add(
            parent,
            _crs("AccountNumber"),
            text(row, columns.account_number),
            AcctNumberType=self.mapper.parse_code_prefix(
                cell(row, columns.account_number_type), DEFAULT_ACCT_NUMBER_TYPE
            ),
            UndocumentedAccount=self.mapper.format_bool(cell(row, columns.undocumented_account)),
        )

    def _add_balance_and_payment(self, parent: ET.Element, row: Sequence[Any], columns: Any) -> None:
        currency = self.mapper.parse_currency_code(cell(row, columns.currency))
        self._add(
            parent,
            _crs("AccountBalance"),
            self.mapper.format_amount(cell(row, columns.account_balance)),
            currCode=currency,
        )
        payment = self._add(parent, _crs("Payment"))
        self._add(payment, _crs("Type"), PAYMENT_TYPE)
        self._add(
            payment,
            _crs("PaymentAmnt"),
            self.mapper.format_amount(cell(row, columns.payment_amount)),
            currCode=currency,
        )

    def _country_or(self, raw: Any, fallback: str) -> str:
        return self.mapper.parse_country_code(raw) or fallback

    # =========================================================================
    # MessageSpec and ReportingFI
    # =========================================================================

    def build_message_spec(self, business_info: Mapping[str, Any]) -> ET.Element:
        """Build the MessageSpec header with a fresh MessageRefId."""
        self.message_ref_id = self.mapper.generate_id(self._doc_ref_prefix("MSG"))

        spec = ET.Element(_crs("MessageSpec"))
        self._add(spec, _crs("SendingCompanyIN"), as_text(business_info.get(BUSINESS_INFO_KEYS["tin"])))
        self._add(spec, _crs("TransmittingCountry"), self.config.transmitting_country)
        self._add(spec, _crs("ReceivingCountry"), self.config.receiving_country)
        self._add(spec, _crs("MessageType"), self.config.message_type)
        self._add(spec, _crs("MessageRefId"), self.message_ref_id)
        self._add(spec, _crs("MessageTypeIndic"), self.config.message_type_indic)
        self._add(spec, _crs("ReportingPeriod"), self.config.reporting_period.isoformat())
        self._add(spec, _crs("Timestamp"), self._clock().strftime(TIMESTAMP_FORMAT))
        return spec

    def build_reporting_fi(self, business_info: Mapping[str, Any]) -> ET.Element:
        """Build the ReportingFI block from the institution metadata."""
        keys = BUSINESS_INFO_KEYS

        def info(key: str) -> str:
            return as_text(business_info.get(keys[key]))

        residence = self._country_or(business_info.get(keys["residence_country"]), self.config.transmitting_country)

        fi = ET.Element(_crs("ReportingFI"))
        self._add(fi, _crs("ResCountryCode"), residence)
        self._add(fi, _crs("IN"), info("tin"), issuedBy=residence)
        self._add(fi, _crs("Name"), info("name"))
        self._add_address(
            fi,
            country=self._country_or(business_info.get(keys["address_country"]), residence),
            street=info("street"),
            building=info("building_identifier"),
            post_code=info("post_code"),
            city=info("city"),
            legal_address_type=LEGAL_ADDRESS_TYPE,
        )
        self._add_doc_spec(fi, "FI")
        return fi

    # =========================================================================
    # Account reports
    # =========================================================================

    def build_individual_report(self, row: Sequence[Any]) -> ET.Element:
        """Build an AccountReport for one "Individual Accounts" data row."""
        c = INDIVIDUAL_COLUMNS
        report = ET.Element(_crs("AccountReport"))
        self._add_doc_spec(report, "ACC")
        self._add_account_number(report, row, c)

        holder = self._add(report, _crs("AccountHolder"))
        individual = self._add(holder, _crs("Individual"))
        residence = self.mapper.parse_country_code(cell(row, c.residence_country))
        self._add(individual, _crs("ResCountryCode"), residence)
        self._add(
            individual,
            _crs("TIN"),
            text(row, c.tin),
            issuedBy=self._country_or(cell(row, c.tin_issued_by), residence),
        )
        name = self._add(individual, _crs("Name"), nameType=NAME_TYPE)
        self._add(name, _crs("FirstName"), text(row, c.first_name))
        self._add(name, _crs("LastName"), text(row, c.last_name))
        self._add_address(
            individual,
            country=self._country_or(cell(row, c.address_country), residence),
            street=text(row, c.street),
            building=text(row, c.building_identifier),
            floor=text(row, c.floor_identifier),
            district=text(row, c.district_name),
            post_code=text(row, c.post_code),
            city=text(row, c.city),
        )
        self._add_birth_info(
            individual,
            cell(row, c.birth_date),
            text(row, c.birth_city),
            cell(row, c.birth_country),
        )

        self._add_balance_and_payment(report, row, c)
        return report

    def build_entity_report(self, row: Sequence[Any]) -> ET.Element:
        """Build an AccountReport for one "Entity Accounts" data row."""
        c = ENTITY_COLUMNS
        report = ET.Element(_crs("AccountReport"))
        self._add_doc_spec(report, "ACC")
        self._add_account_number(report, row, c)

        holder = self._add(report, _crs("AccountHolder"))
        organisation = self._add(holder, _crs("Organisation"))
        residence = self.mapper.parse_country_code(cell(row, c.residence_country))
        self._add(organisation, _crs("ResCountryCode"), residence)
        self._add(
            organisation,
            _crs("IN"),
            text(row, c.identifying_number),
            issuedBy=self._country_or(cell(row, c.in_issued_by), residence),
        )
        self._add(organisation, _crs("Name"), text(row, c.entity_name))
        self._add_address(
            organisation,
            country=self._country_or(cell(row, c.address_country), residence),
            street=text(row, c.street),
            building=text(row, c.building_identifier),
            floor=text(row, c.floor_identifier),
            district=text(row, c.district_name),
            post_code=text(row, c.post_code),
            city=text(row, c.city),
        )
        self._add(
            holder,
            _crs("AcctHolderType"),
            self.mapper.parse_code_prefix(cell(row, c.account_holder_type), DEFAULT_ACCT_HOLDER_TYPE),
        )

        controlling_person = self.build_controlling_person(row)
        if controlling_person is not None:
            report.append(controlling_person)

        self._add_balance_and_payment(report, row, c)
        return report

    def build_controlling_person(self, row: Sequence[Any]) -> Optional[ET.Element]:
        """
        Build the ControllingPerson nested in an entity row.

        Returns None unless both first and last name are filled in.
        """
        c = CONTROLLING_PERSON_COLUMNS
        first_name = text(row, c.first_name)
        last_name = text(row, c.last_name)
        if not (first_name and last_name):
            return None

        person = ET.Element(_crs("ControllingPerson"))
        individual = self._add(person, _crs("Individual"))
        residence = self.mapper.parse_country_code(cell(row, c.residence_country))
        self._add(individual, _crs("ResCountryCode"), residence)
        self._add(
            individual,
            _crs("TIN"),
            text(row, c.tin),
            issuedBy=self._country_or(cell(row, c.tin_issued_by), residence),
        )
        name = self._add(individual, _crs("Name"), nameType=NAME_TYPE)
        self._add(name, _crs("FirstName"), first_name)
        self._add(name, _crs("LastName"), last_name)
        self._add_address(
            individual,
            country=self._country_or(cell(row, c.address_country), residence),
            street=text(row, c.street),
            building=text(row, c.building_identifier),
            post_code=text(row, c.post_code),
            city=text(row, c.city),
            legal_address_type=LEGAL_ADDRESS_TYPE,
        )
        self._add_birth_info(
            individual,
            cell(row, c.birth_date),
            text(row, c.birth_city),
            cell(row, c.birth_country),
        )
        self._add(
            person,
            _crs("CtrlgPersonType"),
            self.mapper.parse_code_prefix(cell(row, c.person_type), DEFAULT_CTRLG_PERSON_TYPE),
        )
        return person

    # =========================================================================
    # Document
    # =========================================================================

    def build_document(
        self,
        message_spec: ET.Element,
        reporting_fi: ET.Element,
        account_reports: Iterable[ET.Element],
    ) -> ET.Element:
        """Wrap the fragments in the CRS_OECD root element."""
        root = ET.Element(_crs("CRS_OECD"), {"version": CRS_VERSION})
        root.append(message_spec)
        body = self._add(root, _crs("CrsBody"))
        body.append(reporting_fi)
        group = self._add(body, _crs("ReportingGroup"))
        for report in account_reports:
            group.append(report)
        return root

    def render(self, root: ET.Element) -> str:
        """
        Serialize the document as pretty-printed XML text with a UTF-8 declaration.

        Indentation is added between elements only; text content, including
        line breaks inside a cell value, is written unchanged.
        """
        ET.indent(root, space=INDENT)
        return XML_DECLARATION + "\n" + ET.tostring(root, encoding="unicode")

"""
Integration tests for the conversion endpoint.

Uploads real .xlsx workbooks through the API and checks the generated XML,
the download headers and the error responses.
"""
from xml.etree import ElementTree as ET

import pytest
from fastapi.testclient import TestClient

from backend.config import Settings
from backend.services.conversion_service import ConversionService, get_conversion_service

CONVERT_URL = "/api/v1/convert"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def upload(client: TestClient, data: bytes, filename: str = "crs.xlsx", **form):
    fields = {"consent": "true", "reporting_period": "2024-12-31"}
    fields.update(form)
    return client.post(
        CONVERT_URL,
        files={"file": (filename, data, XLSX_CONTENT_TYPE)},
        data=fields,
    )


class TestConvertSuccess:
    """Tests for successful conversions."""

    def test_xml_download(self, client: TestClient, crs_workbook_bytes, crs_namespaces):
        """Test default response is an XML attachment."""
        response = upload(client, crs_workbook_bytes, transmitting_country="MU", receiving_country="FR")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert response.headers["Content-Disposition"] == 'attachment; filename="CRS_MU_2024.xml"'
        assert response.headers["X-Individual-Count"] == "2"
        assert response.headers["X-Entity-Count"] == "1"

        root = ET.fromstring(response.content)
        spec = root.find("crs:MessageSpec", crs_namespaces)
        assert spec.find("crs:TransmittingCountry", crs_namespaces).text == "MU"
        assert spec.find("crs:ReceivingCountry", crs_namespaces).text == "FR"
        assert spec.find("crs:ReportingPeriod", crs_namespaces).text == "2024-12-31"

    def test_json_response(self, client: TestClient, crs_workbook_bytes):
        """Test JSON response carries the XML and counts."""
        response = upload(client, crs_workbook_bytes, response_format="json")

        assert response.status_code == 200
        data = response.json()
        assert data["individual_count"] == 2
        assert data["entity_count"] == 1
        assert data["reporting_period"] == "2024-12-31"
        assert data["filename"].endswith("_2024.xml")
        assert data["xml"].startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert data["message_ref_id"] in data["xml"]

    def test_message_type_indic_override(self, client: TestClient, crs_workbook_bytes, crs_namespaces):
        response = upload(client, crs_workbook_bytes, message_type_indic="CRS703")

        root = ET.fromstring(response.content)
        assert root.find("crs:MessageSpec/crs:MessageTypeIndic", crs_namespaces).text == "CRS703"

    def test_responses_not_cached(self, client: TestClient, crs_workbook_bytes):
        response = upload(client, crs_workbook_bytes)

        assert response.headers.get("Cache-Control") == "no-store"


class TestConvertErrors:
    """Tests for conversion error responses."""

    def test_consent_required(self, client: TestClient, crs_workbook_bytes):
        """Test conversion is refused without consent."""
        response = upload(client, crs_workbook_bytes, consent="false")

        assert response.status_code == 403
        data = response.json()
        assert data["error"] is True
        assert data["error_code"] == "CRS-300"

    def test_consent_field_is_mandatory(self, client: TestClient, crs_workbook_bytes):
        response = client.post(
            CONVERT_URL,
            files={"file": ("crs.xlsx", crs_workbook_bytes, XLSX_CONTENT_TYPE)},
        )

        assert response.status_code == 422

    def test_invalid_file_type(self, client: TestClient):
        response = upload(client, b"a,b,c\n1,2,3\n", filename="accounts.csv")

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "CRS-103"
        assert data["details"]["filename"] == "accounts.csv"

    def test_unreadable_workbook(self, client: TestClient):
        response = upload(client, b"not a workbook")

        assert response.status_code == 422
        assert response.json()["error_code"] == "CRS-102"

    def test_missing_sheets(self, client: TestClient, xlsx_factory):
        data = xlsx_factory({"Business Information": [["TIN", "1"]]})

        response = upload(client, data)

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "CRS-101"
        assert body["details"]["missing_sheets"] == ["Individual Accounts", "Entity Accounts"]

    def test_invalid_country(self, client: TestClient, crs_workbook_bytes):
        response = upload(client, crs_workbook_bytes, receiving_country="France")

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "CRS-700"
        assert body["details"]["errors"][0]["field"] == "receiving_country"

    def test_unknown_message_type_indic(self, client: TestClient, crs_workbook_bytes):
        response = upload(client, crs_workbook_bytes, message_type_indic="CRS999")

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "CRS-700"
        assert body["details"]["errors"][0]["field"] == "message_type_indic"

    def test_file_too_large(self, client: TestClient, crs_workbook_bytes):
        """Test the configured upload limit is enforced."""
        small_limit = Settings(max_upload_size_mb=0)
        client.app.dependency_overrides[get_conversion_service] = lambda: ConversionService(settings=small_limit)

        response = upload(client, crs_workbook_bytes)

        assert response.status_code == 413
        assert response.json()["error_code"] == "CRS-104"

    def test_oversized_upload_rejected_before_conversion(self, client: TestClient, crs_workbook_bytes):
        """Test an oversized upload never reaches the converter."""
        calls = []

        class RecordingService(ConversionService):
            def convert(self, *args, **kwargs):
                calls.append(args)
                return super().convert(*args, **kwargs)

        small_limit = Settings(max_upload_size_mb=0)
        client.app.dependency_overrides[get_conversion_service] = lambda: RecordingService(settings=small_limit)

        response = upload(client, crs_workbook_bytes, consent="false")

        assert response.status_code == 413
        assert response.json()["error_code"] == "CRS-104"
        assert calls == []

    @pytest.mark.parametrize("response_format", ["csv", "XML"])
    def test_unknown_response_format(self, client: TestClient, crs_workbook_bytes, response_format):
        response = upload(client, crs_workbook_bytes, response_format=response_format)

        assert response.status_code == 422

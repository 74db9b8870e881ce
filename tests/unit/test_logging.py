"""
Unit tests for logging utilities.
"""
from backend.middleware.logging import (
    add_correlation_id_processor,
    correlation_id,
    redact_sensitive_data,
    redact_sensitive_processor,
)


class TestRedaction:
    """Tests for sensitive field redaction."""

    def test_top_level_fields(self):
        result = redact_sensitive_data({"tin": "MU-1", "TIN": "MU-2", "name": "Jane"})

        assert result["tin"] == "[REDACTED]"
        assert result["TIN"] == "[REDACTED]"
        assert result["name"] == "Jane"

    def test_nested_fields(self):
        data = {"holder": {"account_number": "ACC-1", "birth_date": "1990-01-01"}, "rows": [{"xml": "<x/>"}]}

        result = redact_sensitive_data(data)

        assert result["holder"]["account_number"] == "[REDACTED]"
        assert result["holder"]["birth_date"] == "[REDACTED]"
        assert result["rows"][0]["xml"] == "[REDACTED]"

    def test_suffixed_fields(self):
        result = redact_sensitive_data({"holder_tin": "MU-1", "cp_birth_date": "1975-06-15", "tinted": "no"})

        assert result["holder_tin"] == "[REDACTED]"
        assert result["cp_birth_date"] == "[REDACTED]"
        assert result["tinted"] == "no"

    def test_counts_are_kept(self):
        event = {"event": "Conversion complete", "individual_accounts": 3, "filename": "crs.xlsx"}

        assert redact_sensitive_processor(None, "info", event) == event


class TestCorrelationProcessor:
    """Tests for correlation ID enrichment."""

    def test_adds_current_correlation_id(self):
        token = correlation_id.set("abc-123")
        try:
            event = add_correlation_id_processor(None, "info", {"event": "x"})
        finally:
            correlation_id.reset(token)

        assert event["correlation_id"] == "abc-123"

"""Tests for logging configuration, formatters and audit events."""

import json
import logging
import re

import pytest
import structlog
from structlog.testing import capture_logs

from opex_planner import audit
from opex_planner.config import Config, LoggingConfig
from opex_planner.logging import (
    build_processors,
    configure_logging,
    get_logger,
    splunk_processor,
    uppercase_level,
)


class TestSplunkProcessor:
    """Tests for splunk_processor function."""

    def test_basic_format(self):
        """Timestamp, level and event in order."""
        result = splunk_processor(None, "info", {"level": "INFO", "event": "data_saved"})

        assert re.match(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z INFO  data_saved$", result)

    def test_key_value_pairs(self):
        event_dict = {
            "level": "INFO",
            "event": "expenses.saved",
            "row_count": 120,
            "total_amount": 5000.5,
        }

        result = splunk_processor(None, "info", event_dict)

        assert "row_count=120" in result
        assert "total_amount=5000.5" in result

    def test_quotes_values_with_spaces(self):
        """Version names such as Live Forecast are quoted."""
        result = splunk_processor(
            None, "info", {"level": "INFO", "event": "expenses.saved", "version": "Live Forecast"}
        )

        assert 'version="Live Forecast"' in result

    def test_level_uppercase_and_default(self):
        assert "DEBUG" in splunk_processor(None, "debug", {"level": "debug", "event": "x"})
        assert "INFO" in splunk_processor(None, "info", {"event": "x"})

    def test_skips_internal_keys(self):
        event_dict = {"level": "INFO", "event": "x", "_record": "hidden", "vendor_id": "v1"}

        result = splunk_processor(None, "info", event_dict)

        assert "_record" not in result
        assert "vendor_id=v1" in result

    def test_uses_stamped_timestamp(self):
        event_dict = {"level": "INFO", "event": "x", "timestamp": "2026-01-08T12:15:00Z"}

        result = splunk_processor(None, "info", event_dict)

        assert result == "2026-01-08T12:15:00Z INFO  x"

    def test_sorted_keys(self):
        event_dict = {"level": "INFO", "event": "x", "version": "Budget", "action": "saved"}

        result = splunk_processor(None, "info", event_dict)

        assert result.find("action=") < result.find("version=")


class TestJsonFormat:
    """Tests for the JSON processor chain."""

    def test_uppercase_level(self):
        assert uppercase_level(None, "debug", {"level": "debug", "event": "x"})["level"] == "DEBUG"
        assert uppercase_level(None, "warning", {"event": "x"})["level"] == "WARNING"

    def test_chain_ends_in_json(self):
        processors = build_processors("json")

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert uppercase_level in processors

    def test_splunk_chain(self):
        processors = build_processors("splunk")

        assert processors[-1] is splunk_processor
        assert any(isinstance(p, structlog.processors.TimeStamper) for p in processors)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_root_level(self):
        configure_logging(Config(logging=LoggingConfig(level="WARNING")))

        assert logging.getLogger().level == logging.WARNING

    def test_audit_events_written_to_file(self, tmp_path):
        """Only audit events land in the log file."""
        log_file = tmp_path / "logs" / "audit.log"
        configure_logging(Config(logging=LoggingConfig(format="json", file=log_file)))

        get_logger("opex_planner.test").info("vendor_added", vendor_id="v1")
        audit.log_database_seeded(10, 360)
        for handler in logging.getLogger(audit.AUDIT_LOGGER_NAME).handlers:
            handler.flush()

        lines = log_file.read_text().strip().splitlines()
        assert len(lines) == 1
        payload = json.loads(lines[0])
        assert payload["event"] == "database.seeded"
        assert payload["logger"] == "audit"
        assert payload["level"] == "INFO"
        assert payload["vendor_count"] == 10
        assert re.match(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}", payload["timestamp"])

    def test_no_file_handler_without_file(self):
        configure_logging(Config())

        assert logging.getLogger(audit.AUDIT_LOGGER_NAME).handlers == []

    def test_audit_follows_enabled_flag(self):
        configure_logging(Config(logging=LoggingConfig(enabled=False)))

        with capture_logs() as logs:
            audit.log_database_seeded(10, 360)

        assert logs == []


class TestAuditEvents:
    """Tests for audit event emission."""

    def test_vendor_created(self):
        with capture_logs() as logs:
            audit.log_vendor_created("v1", "Acme", "VND-AC01")

        assert logs == [
            {
                "event": "vendor.created",
                "event_type": "vendor",
                "action": "created",
                "vendor_id": "v1",
                "name": "Acme",
                "vendor_code": "VND-AC01",
                "user": "system",
                "log_level": "info",
            }
        ]

    def test_expenses_imported_rounds_amount(self):
        with capture_logs() as logs:
            audit.log_expenses_imported("q1.csv", "Budget", 4, 1234.5678, error_count=1)

        assert logs[0]["event"] == "expenses.imported"
        assert logs[0]["total_amount"] == pytest.approx(1234.57)
        assert logs[0]["error_count"] == 1

    def test_disabled(self):
        audit.configure(enabled=False)

        with capture_logs() as logs:
            audit.log_database_seeded(10, 360)

        assert logs == []

"""Tests for expense CSV ingestion."""

from pathlib import Path

import pytest
from structlog.testing import capture_logs

from opex_planner.ingest import ExpenseCsvIngester


@pytest.fixture
def vendors(db):
    """Salesforce and AWS with their sample codes."""
    salesforce = db.save_vendor(
        {
            "name": "Salesforce",
            "category": "Software",
            "vendor_code": "VND-SF01",
            "gl_account": "Software",
            "cost_center": "Sales",
        }
    )
    aws = db.save_vendor(
        {
            "name": "AWS",
            "category": "Software",
            "vendor_code": "VND-AWS1",
            "gl_account": "Software",
            "cost_center": "Engineering",
        }
    )
    return salesforce, aws


def write_csv(tmp_path: Path, content: str) -> Path:
    csv_file = tmp_path / "upload.csv"
    csv_file.write_text(content)
    return csv_file


class TestValidateOnly:
    """Tests for ingesting without a database."""

    def test_totals(self, config, sample_expense_csv):
        result = ExpenseCsvIngester(config).ingest(sample_expense_csv, "Live Forecast")

        assert result.errors == []
        assert result.total_rows == 4
        assert result.total_amount == pytest.approx(5000.5)
        assert result.versions == ["Budget", "Live Forecast"]
        assert result.saved_rows == 0

    def test_unknown_default_version(self, config, sample_expense_csv):
        result = ExpenseCsvIngester(config).ingest(sample_expense_csv, "Forecast")

        assert result.errors == ["Unknown version: Forecast"]
        assert result.total_rows == 0

    def test_unreadable_file(self, config, tmp_path):
        result = ExpenseCsvIngester(config).ingest(tmp_path / "missing.csv", "Budget")

        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to read CSV")

    def test_missing_columns(self, config, tmp_path):
        csv_file = write_csv(tmp_path, "Month,Total\nJan'25,10\n")

        result = ExpenseCsvIngester(config).ingest(csv_file, "Budget")

        assert result.errors == ["Missing required columns: vendor, amount"]

    def test_headers_case_insensitive(self, config, tmp_path):
        csv_file = write_csv(tmp_path, " vendor ,MONTH,amount\nAWS,Mar'25,12.5\n")

        result = ExpenseCsvIngester(config).ingest(csv_file, "Actuals")

        assert result.errors == []
        assert result.versions == ["Actuals"]
        assert result.total_amount == 12.5

    def test_line_errors(self, config, tmp_path):
        csv_file = write_csv(
            tmp_path,
            "Vendor,Month,Amount,Version\n"
            ",Jan'25,1,\n"
            "AWS,Jan'26,1,\n"
            "AWS,Jan'25,1,Plan\n"
            "AWS,Jan'25,abc,\n"
            "AWS,Feb'25,,\n"
            "AWS,Mar'25,7,\n",
        )

        result = ExpenseCsvIngester(config).ingest(csv_file, "Budget")

        assert result.errors == [
            "Line 2: Missing vendor",
            "Line 3: Invalid month 'Jan'26'",
            "Line 4: Unknown version 'Plan'",
            "Line 5: Invalid amount",
            "Line 6: Missing amount",
        ]
        assert result.total_rows == 1
        assert result.total_amount == 7


class TestIngestToDatabase:
    """Tests for ingesting into the database."""

    def test_saves_and_sums_duplicates(self, config, db, vendors, sample_expense_csv):
        salesforce, aws = vendors

        result = ExpenseCsvIngester(config, db).ingest(sample_expense_csv, "Live Forecast")

        assert result.errors == []
        assert result.saved_rows == 3
        forecast = {(r.vendor_id, r.month): r.amount for r in db.get_expense_data("Live Forecast")}
        assert forecast == {(salesforce.id, "Jan'25"): 1000.5, (salesforce.id, "Feb'25"): 2000.0}
        budget = db.get_expense_data("Budget")
        assert [(r.vendor_id, r.amount) for r in budget] == [(aws.id, 2000.0)]

    def test_existing_figures_overwritten(self, config, db, vendors, sample_expense_csv):
        ingester = ExpenseCsvIngester(config, db)
        ingester.ingest(sample_expense_csv, "Live Forecast")
        ingester.ingest(sample_expense_csv, "Live Forecast")

        assert db.count_expense_rows() == 3

    def test_audit_per_version(self, config, db, vendors, sample_expense_csv):
        with capture_logs() as logs:
            ExpenseCsvIngester(config, db).ingest(
                sample_expense_csv, "Live Forecast", original_filename="q1-forecast.csv"
            )

        imported = [log for log in logs if log["event"] == "expenses.imported"]
        assert [log["version"] for log in imported] == ["Budget", "Live Forecast"]
        assert imported[1]["filename"] == "q1-forecast.csv"
        assert imported[1]["row_count"] == 2
        assert imported[1]["total_amount"] == 3000.5

    def test_unknown_vendor(self, config, db, vendors, tmp_path):
        csv_file = write_csv(tmp_path, "VendorCode,Month,Amount\nVND-ZZZZ,Jan'25,1\n")

        result = ExpenseCsvIngester(config, db).ingest(csv_file, "Budget")

        assert result.errors == ["Line 2: Unknown vendor 'VND-ZZZZ'"]
        assert result.saved_rows == 0

    def test_name_fallback_when_code_unknown(self, config, db, vendors, tmp_path):
        _, aws = vendors
        csv_file = write_csv(tmp_path, "VendorCode,Vendor,Month,Amount\nVND-OLD1,aws,Jan'25,5\n")

        result = ExpenseCsvIngester(config, db).ingest(csv_file, "Actuals")

        assert result.errors == []
        assert db.get_expense_data("Actuals")[0].vendor_id == aws.id

    def test_dry_run(self, config, db, vendors, sample_expense_csv):
        result = ExpenseCsvIngester(config, db, dry_run=True).ingest(
            sample_expense_csv, "Live Forecast"
        )

        assert result.total_rows == 4
        assert result.saved_rows == 0
        assert db.count_expense_rows() == 0

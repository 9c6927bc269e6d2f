"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from opex_planner import __version__, cli
from opex_planner.db import Database

runner = CliRunner()


@pytest.fixture(autouse=True)
def skip_logging_setup(monkeypatch):
    """Keep CLI runs from installing handlers on the captured streams."""
    monkeypatch.setattr(cli, "configure_logging", lambda config: None)


@pytest.fixture
def seeded(config_file, temp_db):
    result = runner.invoke(cli.app, ["seed", "--yes", "-c", str(config_file)])
    assert result.exit_code == 0, result.output
    db = Database(temp_db)
    yield db
    db.close()


def invoke(config_file, *args):
    return runner.invoke(cli.app, [*args, "-c", str(config_file)])


def vendor_named(db, name):
    return next(vendor for vendor in db.get_vendors() if vendor.name == name)


class TestBasics:
    def test_version(self):
        result = runner.invoke(cli.app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_seed(self, config_file, temp_db):
        result = invoke(config_file, "seed", "--yes")

        assert result.exit_code == 0
        assert "Database seeded successfully" in result.output
        db = Database(temp_db)
        assert db.count_vendors() == 10
        db.close()

    def test_seed_aborted(self, config_file, temp_db):
        result = runner.invoke(cli.app, ["seed", "-c", str(config_file)], input="n\n")

        assert result.exit_code == 1
        db = Database(temp_db)
        db.initialize()
        assert db.count_vendors() == 0
        db.close()

    def test_summary(self, config_file, seeded):
        result = invoke(config_file, "summary", "--gl-account", "Travel")

        assert result.exit_code == 0
        assert "Forecast" in result.output
        assert "Delta" in result.output

    def test_summary_unknown_period(self, config_file, seeded):
        result = invoke(config_file, "summary", "--period", "H1")

        assert result.exit_code == 1


class TestVendorCommands:
    """Tests for the vendors subcommands."""

    def test_add(self, config_file, temp_db):
        result = invoke(
            config_file, "vendors", "add", "Acme", "--gl-account", "Software", "--cost-center", "Engineering"
        )

        assert result.exit_code == 0, result.output
        db = Database(temp_db)
        assert [vendor.name for vendor in db.get_vendors()] == ["Acme"]
        assert db.count_expense_rows() == 36
        db.close()

    def test_add_all_cost_center(self, config_file):
        result = invoke(config_file, "vendors", "add", "Acme", "--gl-account", "Software", "--cost-center", "All")

        assert result.exit_code == 1

    def test_edit(self, config_file, seeded):
        result = invoke(config_file, "vendors", "edit", "VND-ZM01", "--name", "Zoom Video")

        assert result.exit_code == 0, result.output
        assert vendor_named(seeded, "Zoom Video").gl_account == "Software"

    def test_delete(self, config_file, seeded):
        result = invoke(config_file, "vendors", "delete", "AWS", "--yes")

        assert result.exit_code == 0, result.output
        assert seeded.count_vendors() == 9
        assert seeded.count_expense_rows() == 9 * 36

    def test_unknown_vendor(self, config_file, seeded):
        result = invoke(config_file, "vendors", "delete", "Nobody", "--yes")

        assert result.exit_code == 1
        assert "not found" in result.output


class TestExpenseCommands:
    """Tests for the expenses subcommands and import."""

    def test_set_quarter(self, config_file, seeded):
        result = invoke(
            config_file, "expenses", "set", "Slack", "Q4'25", "9000", "--granularity", "Quarterly"
        )

        assert result.exit_code == 0, result.output
        slack = vendor_named(seeded, "Slack")
        forecast = {r.month: r.amount for r in seeded.get_expense_data("Live Forecast") if r.vendor_id == slack.id}
        assert [forecast[m] for m in ("Oct'25", "Nov'25", "Dec'25")] == [3000.0] * 3

    def test_sync(self, config_file, seeded):
        result = invoke(config_file, "expenses", "sync", "--from", "Budget", "--yes")

        assert result.exit_code == 0, result.output
        budget = {(r.vendor_id, r.month): r.amount for r in seeded.get_expense_data("Budget")}
        actuals = {(r.vendor_id, r.month): r.amount for r in seeded.get_expense_data("Actuals")}
        assert actuals == budget

    def test_show(self, config_file, seeded):
        result = invoke(config_file, "expenses", "show", "--granularity", "Annual", "--gl-account", "Travel")

        assert result.exit_code == 0, result.output
        assert "Delta" in result.output

    def test_import(self, config_file, seeded, sample_expense_csv):
        result = invoke(config_file, "import", str(sample_expense_csv))

        assert result.exit_code == 0, result.output
        assert "Import Summary" in result.output
        salesforce = vendor_named(seeded, "Salesforce")
        forecast = {r.month: r.amount for r in seeded.get_expense_data("Live Forecast") if r.vendor_id == salesforce.id}
        assert forecast["Jan'25"] == 1000.5
        assert forecast["Feb'25"] == 2000.0

    def test_import_dry_run(self, config_file, seeded, sample_expense_csv):
        before = {(r.vendor_id, r.month): r.amount for r in seeded.get_expense_data("Live Forecast")}

        result = invoke(config_file, "import", str(sample_expense_csv), "--dry-run")

        assert result.exit_code == 0
        assert "DRY RUN" in result.output
        after = {(r.vendor_id, r.month): r.amount for r in seeded.get_expense_data("Live Forecast")}
        assert after == before


class TestTagCommands:
    """Tests for the tags subcommands."""

    def test_set_and_list(self, config_file, seeded):
        result = invoke(config_file, "tags", "set", "AWS", "Card")
        assert result.exit_code == 0, result.output

        aws = vendor_named(seeded, "AWS")
        assert seeded.get_product_tags() == {aws.id: ["Card"]}

        result = invoke(config_file, "tags", "list")
        assert "AWS" in result.output

    def test_remove(self, config_file, seeded):
        invoke(config_file, "tags", "set", "AWS", "Card")

        invoke(config_file, "tags", "set", "AWS", "Card", "--remove")

        assert seeded.get_product_tags() == {}

    def test_unknown_product(self, config_file, seeded):
        result = invoke(config_file, "tags", "set", "AWS", "Widgets")

        assert result.exit_code == 1

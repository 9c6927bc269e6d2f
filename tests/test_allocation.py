"""Tests for the product allocation ledger."""

import pytest
from structlog.testing import capture_logs

from opex_planner.allocation import AllocationLedger
from opex_planner.periods import ANNUAL, QUARTERLY


@pytest.fixture
def ledger(sample_planner):
    """Live Forecast ledger with two vendors tagged."""
    return AllocationLedger(
        sample_planner.expenses_for("Live Forecast"),
        product_tags={"v1": ["Card", "Trading"], "v4": ["Markets"]},
    )


class TestLedgerVendors:
    """Tests for which vendors the ledger shows."""

    def test_only_tagged_vendors(self, ledger, sample_planner):
        vendors = ledger.vendors(sample_planner.expense_data)
        assert [vendor.id for vendor in vendors] == ["v1", "v4"]

    def test_filters_apply(self, ledger, sample_planner):
        vendors = ledger.vendors(sample_planner.expense_data, cost_centers=["Sales"], search="slack")
        assert [vendor.id for vendor in vendors] == ["v4"]


class TestAllocations:
    """Tests for setting and balancing allocations."""

    def test_unallocated(self, ledger):
        ledger.set_allocation("v1", "Card", "Jan'25", 6000)
        ledger.set_allocation("v1", "Trading", "Jan'25", 3000)

        assert ledger.total_allocated("v1", "Jan'25") == 9000
        assert ledger.unallocated("v1", "Jan'25") == pytest.approx(800)
        assert not ledger.is_balanced("v1", "Jan'25")

    def test_untagged_product_rejected(self, ledger):
        with pytest.raises(ValueError, match="not tagged"):
            ledger.set_allocation("v1", "Markets", "Jan'25", 100)

    def test_column_outside_granularity(self, ledger):
        with pytest.raises(ValueError):
            ledger.set_allocation("v1", "Card", "Q1'25", 100)

    def test_allocate_remaining(self, ledger):
        ledger.set_allocation("v1", "Card", "Jan'25", 6000)

        assert ledger.allocate_remaining("v1", "Trading", "Jan'25") is True

        assert ledger.allocated_amount("v1", "Trading", "Jan'25") == pytest.approx(3800)
        assert ledger.is_balanced("v1", "Jan'25")

    def test_allocate_remaining_when_over_allocated(self, ledger):
        ledger.set_allocation("v1", "Card", "Jan'25", 20000)

        assert ledger.allocate_remaining("v1", "Trading", "Jan'25") is False
        assert ledger.allocated_amount("v1", "Trading", "Jan'25") == 0

    def test_apply_to_all_months(self, ledger):
        """The source column's percentage split is copied to the others."""
        ledger.set_allocation("v4", "Markets", "Jan'25", 4900)
        ledger.set_allocation("v1", "Card", "Jan'25", 9800 * 0.75)
        ledger.set_allocation("v1", "Trading", "Jan'25", 9800 * 0.25)

        ledger.apply_to_all_months("v1", "Jan'25")

        assert ledger.allocated_amount("v1", "Card", "Dec'25") == pytest.approx(12000 * 0.75)
        assert ledger.allocated_amount("v1", "Trading", "Dec'25") == pytest.approx(12000 * 0.25)
        assert ledger.all_balanced("v1")
        # Other vendors untouched
        assert ledger.allocated_amount("v4", "Markets", "Feb'25") == 0

    def test_apply_from_zero_column(self):
        ledger = AllocationLedger(
            {"v1": {"Jan'25": 0.0, "Feb'25": 100.0}},
            product_tags={"v1": ["Card"]},
        )

        ledger.apply_to_all_months("v1", "Jan'25")

        assert ledger.allocated_amount("v1", "Card", "Feb'25") == 0

    def test_summary(self, ledger):
        ledger.set_allocation("v4", "Markets", "Jan'25", 4900)
        ledger.allocate_remaining("v4", "Markets", "Feb'25")

        summary = ledger.summary("v4")

        assert summary.total_allocated == pytest.approx(4900 + 5100)
        assert summary.remaining == pytest.approx(summary.total_expense - 10000)
        assert not summary.is_balanced


class TestGranularity:
    """Tests for allocating at quarterly and annual columns."""

    def test_quarterly_columns(self, sample_planner):
        ledger = AllocationLedger(
            sample_planner.expenses_for("Live Forecast"),
            product_tags={"v4": ["Markets"]},
            granularity=QUARTERLY,
        )

        assert ledger.vendor_expense("v4", "Q1'25") == 4900 + 5100 + 5050
        assert ledger.allocate_remaining("v4", "Markets", "Q1'25")
        assert ledger.is_balanced("v4", "Q1'25")

    def test_set_granularity(self, ledger):
        ledger.set_granularity(ANNUAL)

        assert ledger.columns == ["FY 2025"]
        ledger.allocate_remaining("v4", "Markets", "FY 2025")
        assert ledger.all_balanced("v4")


class TestAllocationPersistence:
    """Tests for saving and loading allocations."""

    def test_save_and_load(self, db, vendor_fields):
        vendor = db.save_vendor(vendor_fields)
        ledger = AllocationLedger({vendor.id: {"Jan'25": 100.0}}, product_tags={vendor.id: ["Card"]})
        ledger.set_allocation(vendor.id, "Card", "Jan'25", 100.0)

        with capture_logs() as logs:
            assert ledger.save(db) == 1

        assert logs[-1]["event"] == "allocations.saved"
        assert logs[-1]["total_amount"] == 100.0

        loaded = AllocationLedger({vendor.id: {"Jan'25": 100.0}}, product_tags={vendor.id: ["Card"]})
        loaded.load(db)
        assert loaded.is_balanced(vendor.id, "Jan'25")

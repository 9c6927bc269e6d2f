"""Tests for dashboard and summary figures."""

import pytest

from opex_planner.errors import VendorNotFoundError
from opex_planner.planner import ExpenseDataView, VendorSummary
from opex_planner.reporting import (
    SummaryPoint,
    chart_stats,
    compare_totals,
    gl_breakdown,
    gl_summary,
    monthly_summary,
    quarterly_summary,
    top_vendors,
    vendor_detail,
    vendors_for_gl_account,
)


@pytest.fixture
def view(sample_planner):
    return sample_planner.view_for("Live Forecast")


@pytest.fixture
def forecast(sample_planner):
    return sample_planner.expenses_for("Live Forecast")


@pytest.fixture
def budget(sample_planner):
    return sample_planner.expenses_for("Budget")


class TestForecastVsBudget:
    """Tests for the summary dashboard comparisons."""

    def test_travel_full_year(self, view, forecast, budget):
        comparison = compare_totals(view, forecast, budget, 2025, gl_account="Travel")

        assert comparison.forecast == 131900
        assert comparison.budget == 132000
        assert comparison.variance == -100
        assert comparison.variance_percent == pytest.approx(-100 / 132000 * 100)

    def test_quarter_and_cost_center(self, view, forecast, budget):
        comparison = compare_totals(
            view, forecast, budget, 2025, period="Q1", cost_centers=["Sales"], gl_account="Software"
        )

        # Salesforce and Slack
        assert comparison.forecast == (9800 + 9900 + 10100) + (4900 + 5100 + 5050)
        assert comparison.budget == 30000 + 15000

    def test_single_month(self, view, forecast, budget):
        comparison = compare_totals(view, forecast, budget, 2025, period="Feb'25", gl_account="Travel")

        assert comparison.forecast == 4900
        assert comparison.budget == 5000

    def test_zero_budget_percent(self):
        view = ExpenseDataView(
            vendors=[VendorSummary(id="a", name="A", category="Other", vendor_code="VND-A001")],
            gl_accounts={"a": "Other"},
            cost_centers={"a": "HR"},
            expenses={},
        )

        comparison = compare_totals(view, {"a": {"Jan'25": 50.0}}, {}, 2025)

        assert comparison.variance == 50
        assert comparison.variance_percent == 0.0

    def test_gl_breakdown_drops_empty_accounts(self, view, forecast, budget):
        rows = gl_breakdown(view, forecast, budget, 2025)

        assert [row.name for row in rows] == [
            "Professional Services",
            "Travel",
            "Software",
            "Facilities",
        ]
        travel = rows[1]
        assert (travel.forecast, travel.budget) == (131900, 132000)

    def test_gl_breakdown_unknown_account_counts_as_other(self):
        view = ExpenseDataView(
            vendors=[VendorSummary(id="a", name="A", category="Snacks", vendor_code="VND-A001")],
            gl_accounts={"a": "Snacks"},
            cost_centers={"a": "HR"},
            expenses={},
        )

        rows = gl_breakdown(view, {"a": {"Jan'25": 10.0}}, {}, 2025)

        assert [(row.name, row.forecast) for row in rows] == [("Other", 10.0)]

    def test_vendors_for_gl_account(self, view, forecast, budget):
        rows = vendors_for_gl_account(view, forecast, budget, "Professional Services", 2025)

        assert [row.name for row in rows] == ["Deloitte", "Accenture"]
        assert rows[0].id == "v5"
        assert rows[0].forecast == 254800
        assert rows[1].forecast == 164700

    def test_unknown_period(self, view, forecast, budget):
        with pytest.raises(ValueError):
            compare_totals(view, forecast, budget, 2025, period="H1")


class TestPlannerSummary:
    """Tests for the planner summary series."""

    def test_monthly_summary(self, view):
        points = monthly_summary(view, 2025)

        assert len(points) == 12
        january = points[0]
        assert january.name == "Jan'25"
        assert january.total == 159250
        assert january.software == 100150
        assert january.services == 24500
        assert january.travel == 14800
        assert january.facilities == 19800

    def test_quarterly_matches_monthly(self, view):
        quarterly = quarterly_summary(view, 2025)
        monthly = monthly_summary(view, 2025)

        assert [point.name for point in quarterly] == ["Q1'25", "Q2'25", "Q3'25", "Q4'25"]
        assert sum(p.total for p in quarterly) == pytest.approx(sum(p.total for p in monthly))

    def test_summary_follows_filters(self, view):
        points = monthly_summary(view, 2025, gl_account="Travel")

        assert points[0].total == 14800
        assert points[0].software == 0

    def test_gl_summary(self, view):
        totals = gl_summary(view, 2025)

        assert [total.name for total in totals] == [
            "Software",
            "Professional Services",
            "Facilities",
            "Travel",
        ]

    def test_top_vendors(self, view):
        top = top_vendors(view, 2025, limit=3)

        assert [vendor.name for vendor in top] == ["AWS", "Microsoft", "Deloitte"]
        assert top[0].value == 630200
        assert top[0].id == "v3"


class TestVendorDetail:
    """Tests for vendor_detail."""

    def test_detail(self, view):
        detail = vendor_detail(view, "v4", 2025)

        assert detail.name == "Slack"
        assert detail.cost_center == "Sales"
        assert detail.total == 60050
        assert len(detail.monthly) == 12
        assert detail.quarterly[0].name == "Q1"
        assert detail.quarterly[0].value == 15050

    def test_missing_vendor(self, view):
        with pytest.raises(VendorNotFoundError):
            vendor_detail(view, "ghost", 2025)


class TestChartStats:
    """Tests for chart_stats."""

    def test_stats(self):
        points = [
            SummaryPoint(name="Jan'25", total=0.0),
            SummaryPoint(name="Feb'25", total=10.0),
            SummaryPoint(name="Mar'25", total=30.0),
        ]

        stats = chart_stats(points)

        assert stats.total == 40
        assert stats.average == pytest.approx(40 / 3)
        assert stats.highest.name == "Mar'25"
        # Lowest ignores empty periods
        assert stats.lowest.name == "Feb'25"

    def test_series_key(self):
        points = [SummaryPoint(name="Q1'25", total=5.0, travel=2.0)]

        assert chart_stats(points, key="travel").total == 2.0

    def test_empty(self):
        stats = chart_stats([])

        assert stats.total == 0
        assert stats.average == 0
        assert stats.highest.name == ""

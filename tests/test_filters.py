"""Tests for vendor filtering, sorting and grid assembly."""

import pytest

from opex_planner.periods import QUARTERLY
from opex_planner.planner import ASCENDING, DESCENDING, build_grid, filter_vendors, sort_vendors


def names(vendors):
    return [vendor.name for vendor in vendors]


class TestFilterVendors:
    """Tests for filter_vendors."""

    def test_all_passes_everything(self, sample_planner):
        assert len(filter_vendors(sample_planner.expense_data)) == 10

    def test_gl_account(self, sample_planner):
        vendors = filter_vendors(sample_planner.expense_data, gl_account="Professional Services")
        assert sorted(names(vendors)) == ["Accenture", "Deloitte"]

    def test_cost_centers(self, sample_planner):
        vendors = filter_vendors(sample_planner.expense_data, cost_centers=["Finance", "Marketing"])
        assert sorted(names(vendors)) == ["Accenture", "Adobe", "Deloitte", "WeWork"]

    def test_combined_filters(self, sample_planner):
        vendors = filter_vendors(
            sample_planner.expense_data, gl_account="Software", cost_centers=["Engineering"]
        )
        assert sorted(names(vendors)) == ["AWS", "Microsoft", "Zoom"]

    def test_search_matches_name_or_code(self, sample_planner):
        view = sample_planner.expense_data
        assert names(filter_vendors(view, search="delt")) == ["Delta Airlines"]
        assert names(filter_vendors(view, search="vnd-aws")) == ["AWS"]

    def test_products_require_tags(self, sample_planner):
        tags = {"v1": ["Card"], "v3": ["Card", "Trading"], "v7": ["Markets"]}
        view = sample_planner.expense_data

        assert sorted(names(filter_vendors(view, product_tags=tags, products=["Card"]))) == [
            "AWS",
            "Salesforce",
        ]
        # Without tag data the product selection is ignored
        assert len(filter_vendors(view, products=["Card"])) == 10


class TestSortVendors:
    """Tests for sort_vendors."""

    def test_by_name(self, sample_planner):
        view = sample_planner.expense_data
        ordered = sort_vendors(view.vendors, "name", DESCENDING, view, {})
        assert ordered[0].name == "Zoom"
        assert ordered[-1].name == "Accenture"

    def test_no_key_keeps_order(self, sample_planner):
        view = sample_planner.expense_data
        assert sort_vendors(view.vendors, None, ASCENDING, view, {}) == view.vendors

    def test_unknown_direction(self, sample_planner):
        view = sample_planner.expense_data
        with pytest.raises(ValueError):
            sort_vendors(view.vendors, "name", "sideways", view, {})


class TestBuildGrid:
    """Tests for build_grid."""

    def test_monthly_grid(self, sample_planner):
        grid = build_grid(sample_planner)

        assert grid.version == "Live Forecast"
        assert len(grid.columns) == 12
        assert len(grid.rows) == 10
        assert grid.grand_total == pytest.approx(sum(row.total for row in grid.rows))
        assert grid.grand_total == pytest.approx(sum(grid.column_totals.values()))

    def test_quarterly_grid_follows_filters(self, sample_planner):
        sample_planner.set_time_granularity(QUARTERLY)
        sample_planner.set_gl_account("Travel")

        grid = build_grid(sample_planner)

        assert grid.columns == ["Q1'25", "Q2'25", "Q3'25", "Q4'25"]
        assert [row.vendor.name for row in grid.rows] == ["Delta Airlines"]
        assert grid.rows[0].values["Q1'25"] == 14800 + 4900 + 15200

    def test_sort_by_total(self, sample_planner):
        grid = build_grid(sample_planner, sort_key="total", direction=DESCENDING)

        assert grid.rows[0].vendor.name == "AWS"
        totals = [row.total for row in grid.rows]
        assert totals == sorted(totals, reverse=True)

    def test_product_tags_on_rows(self, sample_planner):
        grid = build_grid(sample_planner, product_tags={"v3": ["Card"]}, products=["Card"])

        assert [row.vendor.name for row in grid.rows] == ["AWS"]
        assert grid.rows[0].products == ["Card"]

"""Dashboard and summary data for the web views."""

from dataclasses import asdict

from opex_planner import reporting
from opex_planner.dimensions import ALL, BUDGET, LIVE_FORECAST
from opex_planner.periods import FULL_YEAR, QUARTERLY, period_options
from opex_planner.planner import ExpensePlanner


class DashboardService:
    """Service for building forecast-vs-budget and planner summary figures."""

    def __init__(self, planner: ExpensePlanner):
        self.planner = planner

    def forecast_vs_budget(
        self,
        period: str = FULL_YEAR,
        gl_account: str = ALL,
        cost_centers: list[str] | None = None,
    ) -> dict:
        """Totals, GL breakdown and (for one GL account) the vendor table."""
        planner = self.planner
        cost_centers = cost_centers or [ALL]
        view = planner.view_for(LIVE_FORECAST)
        forecast = planner.expenses_for(LIVE_FORECAST)
        budget = planner.expenses_for(BUDGET)

        totals = reporting.compare_totals(
            view, forecast, budget, planner.year, period, cost_centers, gl_account
        )
        breakdown = reporting.gl_breakdown(
            view,
            forecast,
            budget,
            planner.year,
            period,
            cost_centers,
            planner.planning.gl_accounts,
        )
        vendors = []
        if gl_account != ALL:
            vendors = reporting.vendors_for_gl_account(
                view, forecast, budget, gl_account, planner.year, period, cost_centers
            )

        return {
            "period": period,
            "gl_account": gl_account,
            "cost_centers": cost_centers,
            "periods": period_options(planner.year),
            "totals": asdict(totals),
            "gl_breakdown": [asdict(row) for row in breakdown],
            "vendors": [asdict(row) for row in vendors],
        }

    def planner_summary(self) -> dict:
        """Charts for the selected version under the planner's current filters."""
        planner = self.planner
        view = planner.expense_data
        args = (view, planner.year, planner.gl_account, planner.selected_cost_centers)

        if planner.time_granularity == QUARTERLY:
            points = reporting.quarterly_summary(*args)
        else:
            points = reporting.monthly_summary(*args)

        return {
            "version": planner.version,
            "granularity": planner.time_granularity,
            "points": [asdict(point) for point in points],
            "stats": asdict(reporting.chart_stats(points)),
            "gl_summary": [asdict(total) for total in reporting.gl_summary(*args)],
            "top_vendors": [asdict(total) for total in reporting.top_vendors(*args)],
        }

    def vendor_detail(self, vendor_id: str) -> dict:
        planner = self.planner
        return asdict(reporting.vendor_detail(planner.expense_data, vendor_id, planner.year))

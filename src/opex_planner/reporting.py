"""Dashboard figures: forecast vs budget, planner summaries and chart statistics."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .dimensions import ALL, GL_ACCOUNTS
from .errors import VendorNotFoundError
from .periods import (
    FULL_YEAR,
    QUARTERS,
    month_labels,
    months_for_period,
    quarter_months,
)
from .planner.filters import filter_vendors
from .planner.models import ExpenseDataView

Expenses = Mapping[str, Mapping[str, float]]

OTHER = "Other"

# GL accounts broken out as their own series in the planner summary
SUMMARY_SERIES = {
    "Software": "software",
    "Professional Services": "services",
    "Travel": "travel",
    "Facilities": "facilities",
}


@dataclass
class Comparison:
    """Forecast against budget for a vendor set, GL account or single vendor."""

    forecast: float
    budget: float
    variance: float
    variance_percent: float
    name: str = ""
    id: str | None = None


@dataclass
class SummaryPoint:
    """One month or quarter of the planner summary charts."""

    name: str
    total: float = 0.0
    software: float = 0.0
    services: float = 0.0
    travel: float = 0.0
    facilities: float = 0.0


@dataclass
class NamedTotal:
    name: str
    value: float
    id: str | None = None


@dataclass
class VendorDetail:
    """Figures for the vendor details panel."""

    vendor_id: str
    name: str
    gl_account: str
    cost_center: str
    total: float
    monthly: list[NamedTotal] = field(default_factory=list)
    quarterly: list[NamedTotal] = field(default_factory=list)


@dataclass
class ChartStats:
    total: float
    average: float
    highest: NamedTotal
    lowest: NamedTotal


def _comparison(forecast: float, budget: float, name: str = "", id: str | None = None) -> Comparison:
    variance = forecast - budget
    # Percent of budget; zero when there is no budget to compare against
    variance_percent = (variance / budget) * 100 if budget != 0 else 0.0
    return Comparison(
        forecast=forecast,
        budget=budget,
        variance=variance,
        variance_percent=variance_percent,
        name=name,
        id=id,
    )


def _sum_months(expenses: Expenses, vendor_id: str, months: Iterable[str]) -> float:
    figures = expenses.get(vendor_id) or {}
    return sum(figures.get(month, 0) or 0 for month in months)


def _vendor_ids(
    view: ExpenseDataView,
    gl_account: str | Iterable[str] = ALL,
    cost_centers: str | Iterable[str] = ALL,
) -> list[str]:
    return [vendor.id for vendor in filter_vendors(view, gl_account, cost_centers)]


# Summary dashboard (Live Forecast vs Budget)


def compare_totals(
    view: ExpenseDataView,
    forecast: Expenses,
    budget: Expenses,
    year: int,
    period: str = FULL_YEAR,
    cost_centers: str | Iterable[str] = ALL,
    gl_account: str = ALL,
) -> Comparison:
    """Forecast and budget totals for the filtered vendors over a period."""
    months = months_for_period(period, year)
    forecast_total = 0.0
    budget_total = 0.0
    for vendor_id in _vendor_ids(view, gl_account, cost_centers):
        forecast_total += _sum_months(forecast, vendor_id, months)
        budget_total += _sum_months(budget, vendor_id, months)
    return _comparison(forecast_total, budget_total)


def gl_breakdown(
    view: ExpenseDataView,
    forecast: Expenses,
    budget: Expenses,
    year: int,
    period: str = FULL_YEAR,
    cost_centers: str | Iterable[str] = ALL,
    gl_accounts: Iterable[str] = GL_ACCOUNTS,
) -> list[Comparison]:
    """Forecast vs budget per GL account; accounts with no figures are dropped.

    Vendors filed under an account outside ``gl_accounts`` count as Other.
    """
    months = months_for_period(period, year)
    totals = {name: [0.0, 0.0] for name in gl_accounts}
    totals.setdefault(OTHER, [0.0, 0.0])

    for vendor_id in _vendor_ids(view, ALL, cost_centers):
        account = view.gl_accounts.get(vendor_id) or OTHER
        if account not in totals:
            account = OTHER
        totals[account][0] += _sum_months(forecast, vendor_id, months)
        totals[account][1] += _sum_months(budget, vendor_id, months)

    return [
        _comparison(forecast_total, budget_total, name=name)
        for name, (forecast_total, budget_total) in totals.items()
        if forecast_total != 0 or budget_total != 0
    ]


def vendors_for_gl_account(
    view: ExpenseDataView,
    forecast: Expenses,
    budget: Expenses,
    gl_account: str,
    year: int,
    period: str = FULL_YEAR,
    cost_centers: str | Iterable[str] = ALL,
) -> list[Comparison]:
    """Per-vendor forecast vs budget within one GL account, largest forecast first."""
    months = months_for_period(period, year)
    rows = [
        _comparison(
            _sum_months(forecast, vendor.id, months),
            _sum_months(budget, vendor.id, months),
            name=vendor.name,
            id=vendor.id,
        )
        for vendor in filter_vendors(view, gl_account, cost_centers)
    ]
    return sorted(rows, key=lambda row: row.forecast, reverse=True)


# Planner summary (selected version)


def _add_to_point(point: SummaryPoint, account: str | None, amount: float) -> None:
    point.total += amount
    series = SUMMARY_SERIES.get(account or "")
    if series:
        setattr(point, series, getattr(point, series) + amount)


def monthly_summary(
    view: ExpenseDataView,
    year: int,
    gl_account: str = ALL,
    cost_centers: str | Iterable[str] = ALL,
) -> list[SummaryPoint]:
    vendor_ids = _vendor_ids(view, gl_account, cost_centers)
    points = []
    for month in month_labels(year):
        point = SummaryPoint(name=month)
        for vendor_id in vendor_ids:
            _add_to_point(point, view.gl_accounts.get(vendor_id), _sum_months(view.expenses, vendor_id, [month]))
        points.append(point)
    return points


def quarterly_summary(
    view: ExpenseDataView,
    year: int,
    gl_account: str = ALL,
    cost_centers: str | Iterable[str] = ALL,
) -> list[SummaryPoint]:
    vendor_ids = _vendor_ids(view, gl_account, cost_centers)
    points = []
    for quarter, months in quarter_months(year).items():
        point = SummaryPoint(name=quarter)
        for vendor_id in vendor_ids:
            _add_to_point(point, view.gl_accounts.get(vendor_id), _sum_months(view.expenses, vendor_id, months))
        points.append(point)
    return points


def gl_summary(
    view: ExpenseDataView,
    year: int,
    gl_account: str = ALL,
    cost_centers: str | Iterable[str] = ALL,
) -> list[NamedTotal]:
    """Full-year total per GL account, in first-seen order."""
    months = month_labels(year)
    totals: dict[str, float] = {}
    for vendor_id in _vendor_ids(view, gl_account, cost_centers):
        account = view.gl_accounts.get(vendor_id, "")
        totals[account] = totals.get(account, 0.0) + _sum_months(view.expenses, vendor_id, months)
    return [NamedTotal(name=name, value=value) for name, value in totals.items()]


def top_vendors(
    view: ExpenseDataView,
    year: int,
    gl_account: str = ALL,
    cost_centers: str | Iterable[str] = ALL,
    limit: int = 5,
) -> list[NamedTotal]:
    """Largest vendors by full-year total."""
    months = month_labels(year)
    totals = [
        NamedTotal(name=vendor.name, value=_sum_months(view.expenses, vendor.id, months), id=vendor.id)
        for vendor in filter_vendors(view, gl_account, cost_centers)
    ]
    return sorted(totals, key=lambda total: total.value, reverse=True)[:limit]


def vendor_detail(view: ExpenseDataView, vendor_id: str, year: int) -> VendorDetail:
    """Totals, monthly series and quarterly totals for one vendor.

    Raises:
        VendorNotFoundError: If the vendor is not in the view.
    """
    vendor = view.vendor(vendor_id)
    if vendor is None:
        raise VendorNotFoundError(vendor_id, "the selected version")

    monthly = [
        NamedTotal(name=month, value=_sum_months(view.expenses, vendor_id, [month]))
        for month in month_labels(year)
    ]
    quarterly = [
        NamedTotal(name=quarter, value=_sum_months(view.expenses, vendor_id, months))
        for quarter, months in zip(QUARTERS, quarter_months(year).values())
    ]
    return VendorDetail(
        vendor_id=vendor_id,
        name=vendor.name,
        gl_account=view.gl_accounts.get(vendor_id, ""),
        cost_center=view.cost_centers.get(vendor_id, ""),
        total=sum(point.value for point in monthly),
        monthly=monthly,
        quarterly=quarterly,
    )


def chart_stats(points: list[SummaryPoint], key: str = "total") -> ChartStats:
    """Total, average, highest and lowest non-zero period for one series."""
    values = [(point.name, getattr(point, key)) for point in points]
    total = sum(value for _, value in values)

    highest = NamedTotal(name="", value=0.0)
    lowest = NamedTotal(name="", value=0.0)
    for name, value in values:
        if value > highest.value:
            highest = NamedTotal(name=name, value=value)
        if value > 0 and (lowest.value == 0 or value < lowest.value):
            lowest = NamedTotal(name=name, value=value)

    return ChartStats(
        total=total,
        average=total / (len(values) or 1),
        highest=highest,
        lowest=lowest,
    )

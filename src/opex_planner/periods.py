"""Fiscal calendar: month, quarter and annual column labels.

Months are labelled ``Jan'25`` .. ``Dec'25``, quarters ``Q1'25`` .. ``Q4'25``
and the full year ``FY 2025``. Expense figures are always stored per month;
quarterly and annual columns are sums over their months.
"""

import calendar
from collections.abc import Mapping

MONTHLY = "Monthly"
QUARTERLY = "Quarterly"
ANNUAL = "Annual"

GRANULARITIES = (MONTHLY, QUARTERLY, ANNUAL)

FULL_YEAR = "Full Year"
QUARTERS = ("Q1", "Q2", "Q3", "Q4")


def _suffix(year: int) -> str:
    return f"{year % 100:02d}"


def month_labels(year: int) -> list[str]:
    """Return the twelve month labels for a year."""
    return [f"{calendar.month_abbr[m]}'{_suffix(year)}" for m in range(1, 13)]


def quarter_labels(year: int) -> list[str]:
    """Return the four quarter labels for a year."""
    return [f"{q}'{_suffix(year)}" for q in QUARTERS]


def annual_label(year: int) -> str:
    return f"FY {year}"


def quarter_months(year: int) -> dict[str, list[str]]:
    """Map each quarter label to its three month labels."""
    months = month_labels(year)
    return {
        label: months[i * 3 : i * 3 + 3]
        for i, label in enumerate(quarter_labels(year))
    }


def validate_granularity(granularity: str) -> str:
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown time granularity: {granularity!r}")
    return granularity


def time_columns(granularity: str, year: int) -> list[str]:
    """Return the grid column labels for a granularity."""
    validate_granularity(granularity)
    if granularity == MONTHLY:
        return month_labels(year)
    if granularity == QUARTERLY:
        return quarter_labels(year)
    return [annual_label(year)]


def months_for_column(column: str, granularity: str, year: int) -> list[str]:
    """Return the months that make up a grid column.

    Raises:
        ValueError: If the column does not belong to the granularity.
    """
    validate_granularity(granularity)
    if granularity == MONTHLY:
        if column not in month_labels(year):
            raise ValueError(f"Unknown month column: {column!r}")
        return [column]
    if granularity == QUARTERLY:
        quarters = quarter_months(year)
        if column not in quarters:
            raise ValueError(f"Unknown quarter column: {column!r}")
        return quarters[column]
    if column != annual_label(year):
        raise ValueError(f"Unknown annual column: {column!r}")
    return month_labels(year)


def column_value(
    month_amounts: Mapping[str, float] | None,
    column: str,
    granularity: str,
    year: int,
) -> float:
    """Sum a vendor's monthly amounts over the months of a column."""
    if not month_amounts:
        return 0.0
    return sum(
        month_amounts.get(month, 0) or 0
        for month in months_for_column(column, granularity, year)
    )


def distribute(amount: float, column: str, granularity: str, year: int) -> dict[str, float]:
    """Spread a column figure evenly across the months it covers."""
    months = months_for_column(column, granularity, year)
    share = amount / len(months)
    return {month: share for month in months}


def period_options(year: int) -> list[str]:
    """Dashboard period selector values."""
    return [FULL_YEAR, *QUARTERS, *month_labels(year)]


def months_for_period(period: str, year: int) -> list[str]:
    """Resolve a dashboard period (Full Year, Q1..Q4 or a month) to months."""
    if period == FULL_YEAR:
        return month_labels(year)
    if period in QUARTERS:
        index = QUARTERS.index(period)
        return month_labels(year)[index * 3 : index * 3 + 3]
    if period in month_labels(year):
        return [period]
    raise ValueError(f"Unknown period: {period!r}")


def forecast_months(year: int, closed_months: int) -> list[str]:
    """Months after the closed (actualised) part of the year."""
    return month_labels(year)[closed_months:]


def closed_months_for(year: int, closed_months: int) -> list[str]:
    return month_labels(year)[:closed_months]


def is_forecast_period(month: str, year: int, closed_months: int) -> bool:
    return month in forecast_months(year, closed_months)


def empty_months(year: int) -> dict[str, float]:
    """A zero figure for every month of the year."""
    return {month: 0.0 for month in month_labels(year)}

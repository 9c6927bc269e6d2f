"""Vendor filtering, sorting and grid assembly for the planner views."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..dimensions import ALL
from ..periods import column_value, time_columns
from .models import ExpenseDataView, VendorSummary

if TYPE_CHECKING:
    from .state import ExpensePlanner

ASCENDING = "ascending"
DESCENDING = "descending"

TOTAL_KEY = "total"


@dataclass
class GridRow:
    """One vendor line of the planner grid."""

    vendor: VendorSummary
    gl_account: str
    cost_center: str
    values: dict[str, float]
    total: float
    products: list[str] = field(default_factory=list)


@dataclass
class Grid:
    """Planner grid for one version and granularity."""

    version: str
    granularity: str
    columns: list[str]
    rows: list[GridRow]
    column_totals: dict[str, float]
    grand_total: float


def _selection(value: str | Iterable[str] | None) -> list[str]:
    if value is None:
        return [ALL]
    if isinstance(value, str):
        return [value]
    return list(value) or [ALL]


def filter_vendors(
    view: ExpenseDataView,
    gl_account: str | Iterable[str] | None = ALL,
    cost_centers: str | Iterable[str] | None = ALL,
    search: str | None = None,
    product_tags: Mapping[str, Iterable[str]] | None = None,
    products: Iterable[str] | None = None,
) -> list[VendorSummary]:
    """Filter the view's vendors by GL account, cost center, search text and product.

    ``All`` in a selection disables that filter. The product filter keeps
    vendors tagged with any selected product and only applies when
    ``product_tags`` is given.
    """
    gl_selection = _selection(gl_account)
    cc_selection = _selection(cost_centers)
    product_selection = _selection(products)
    needle = (search or "").strip().lower()

    result = []
    for vendor in view.vendors:
        if ALL not in gl_selection and view.gl_accounts.get(vendor.id) not in gl_selection:
            continue
        if ALL not in cc_selection and view.cost_centers.get(vendor.id) not in cc_selection:
            continue
        if needle and needle not in vendor.name.lower() and needle not in vendor.vendor_code.lower():
            continue
        if product_tags is not None and ALL not in product_selection:
            tags = set(product_tags.get(vendor.id, ()))
            if not tags.intersection(product_selection):
                continue
        result.append(vendor)
    return result


def sort_vendors(
    vendors: list[VendorSummary],
    key: str | None,
    direction: str,
    view: ExpenseDataView,
    values: Mapping[str, Mapping[str, float]],
) -> list[VendorSummary]:
    """Sort vendors by name, category (GL account), cost center, total or a column.

    Args:
        vendors: Vendors to sort.
        key: ``name``, ``category``, ``cost_center``, ``total`` or a column label.
            None keeps the incoming order.
        direction: ``ascending`` or ``descending``.
        view: Source of GL accounts and cost centers.
        values: {vendor_id: {column or "total": value}}.
    """
    if not key:
        return list(vendors)
    if direction not in (ASCENDING, DESCENDING):
        raise ValueError(f"Unknown sort direction: {direction!r}")
    reverse = direction == DESCENDING

    def sort_value(vendor: VendorSummary):
        if key == "name":
            return vendor.name.lower()
        if key == "category":
            return view.gl_accounts.get(vendor.id, "")
        if key == "cost_center":
            return view.cost_centers.get(vendor.id, "")
        return values.get(vendor.id, {}).get(key, 0)

    return sorted(vendors, key=sort_value, reverse=reverse)


def build_grid(
    planner: "ExpensePlanner",
    search: str | None = None,
    sort_key: str | None = None,
    direction: str = ASCENDING,
    product_tags: Mapping[str, Iterable[str]] | None = None,
    products: Iterable[str] | None = None,
) -> Grid:
    """Assemble grid rows and column totals from the planner's current filters."""
    view = planner.expense_data
    granularity = planner.time_granularity
    columns = time_columns(granularity, planner.year)

    vendors = filter_vendors(
        view,
        planner.gl_account,
        planner.selected_cost_centers,
        search,
        product_tags=product_tags,
        products=products,
    )

    values: dict[str, dict[str, float]] = {}
    for vendor in vendors:
        figures = view.expenses.get(vendor.id)
        row_values = {
            column: column_value(figures, column, granularity, planner.year) for column in columns
        }
        row_values[TOTAL_KEY] = sum(row_values.values())
        values[vendor.id] = row_values

    vendors = sort_vendors(vendors, sort_key, direction, view, values)

    rows = [
        GridRow(
            vendor=vendor,
            gl_account=view.gl_accounts.get(vendor.id, ""),
            cost_center=view.cost_centers.get(vendor.id, ""),
            values={column: values[vendor.id][column] for column in columns},
            total=values[vendor.id][TOTAL_KEY],
            products=list(product_tags.get(vendor.id, [])) if product_tags else [],
        )
        for vendor in vendors
    ]
    column_totals = {column: sum(row.values[column] for row in rows) for column in columns}

    return Grid(
        version=planner.version,
        granularity=granularity,
        columns=columns,
        rows=rows,
        column_totals=column_totals,
        grand_total=sum(row.total for row in rows),
    )

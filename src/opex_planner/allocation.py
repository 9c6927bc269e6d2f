"""Allocation of Live Forecast vendor spend across tagged products.

Allocations are kept per grid column, so a quarterly view allocates the
quarter's total and a monthly view each month's figure.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from . import audit
from .db import Database
from .dimensions import ALL
from .periods import MONTHLY, column_value, months_for_column, time_columns
from .planner.filters import filter_vendors
from .planner.models import ExpenseDataView, VendorSummary

BALANCE_TOLERANCE = 0.01


@dataclass
class AllocationSummary:
    """Totals across all columns for one vendor."""

    total_expense: float
    total_allocated: float
    remaining: float
    is_balanced: bool


class AllocationLedger:
    """Per vendor, product and column allocation amounts."""

    def __init__(
        self,
        expenses: Mapping[str, Mapping[str, float]],
        product_tags: Mapping[str, Iterable[str]],
        granularity: str = MONTHLY,
        year: int = 2025,
        allocations: Mapping[str, Mapping[str, Mapping[str, float]]] | None = None,
    ):
        self.expenses = expenses
        self.product_tags = {vid: list(tags) for vid, tags in product_tags.items()}
        self.granularity = granularity
        self.year = year
        self.columns = time_columns(granularity, year)
        self.allocations: dict[str, dict[str, dict[str, float]]] = {
            vid: {product: dict(by_column) for product, by_column in by_product.items()}
            for vid, by_product in (allocations or {}).items()
        }

    def set_granularity(self, granularity: str) -> None:
        self.granularity = granularity
        self.columns = time_columns(granularity, self.year)

    def _check_column(self, column: str) -> None:
        months_for_column(column, self.granularity, self.year)

    def vendors(
        self,
        view: ExpenseDataView,
        gl_account: str = ALL,
        cost_centers: Iterable[str] = (ALL,),
        search: str | None = None,
    ) -> list[VendorSummary]:
        """Vendors shown in the allocation ledger: filtered and tagged with a product."""
        return [
            vendor
            for vendor in filter_vendors(view, gl_account, cost_centers, search)
            if self.product_tags.get(vendor.id)
        ]

    def vendor_expense(self, vendor_id: str, column: str) -> float:
        return column_value(self.expenses.get(vendor_id), column, self.granularity, self.year)

    def allocated_amount(self, vendor_id: str, product: str, column: str) -> float:
        return self.allocations.get(vendor_id, {}).get(product, {}).get(column, 0) or 0

    def set_allocation(self, vendor_id: str, product: str, column: str, amount: float) -> None:
        """Set the amount of a column's spend allocated to a product.

        Raises:
            ValueError: If the vendor is not tagged with the product or the
                column is not part of the current granularity.
        """
        self._check_column(column)
        if product not in self.product_tags.get(vendor_id, []):
            raise ValueError(f"Vendor {vendor_id} is not tagged with product {product!r}")
        self.allocations.setdefault(vendor_id, {}).setdefault(product, {})[column] = amount

    def total_allocated(self, vendor_id: str, column: str) -> float:
        return sum(
            self.allocated_amount(vendor_id, product, column)
            for product in self.product_tags.get(vendor_id, [])
        )

    def unallocated(self, vendor_id: str, column: str) -> float:
        return self.vendor_expense(vendor_id, column) - self.total_allocated(vendor_id, column)

    def is_balanced(self, vendor_id: str, column: str) -> bool:
        return abs(self.unallocated(vendor_id, column)) < BALANCE_TOLERANCE

    def all_balanced(self, vendor_id: str) -> bool:
        return all(self.is_balanced(vendor_id, column) for column in self.columns)

    def allocate_remaining(self, vendor_id: str, product: str, column: str) -> bool:
        """Add the column's unallocated spend to one product.

        Nothing happens when the column is fully or over allocated.

        Returns:
            True if an amount was added.
        """
        remaining = self.unallocated(vendor_id, column)
        if remaining <= 0:
            return False
        current = self.allocated_amount(vendor_id, product, column)
        self.set_allocation(vendor_id, product, column, current + remaining)
        return True

    def apply_to_all_months(self, vendor_id: str, source_column: str) -> None:
        """Copy the source column's percentage split to every other column."""
        self._check_column(source_column)
        products = self.product_tags.get(vendor_id, [])
        source_total = self.vendor_expense(vendor_id, source_column)
        shares = {
            product: (
                self.allocated_amount(vendor_id, product, source_column) / source_total
                if source_total > 0
                else 0
            )
            for product in products
        }

        for column in self.columns:
            if column == source_column:
                continue
            target_total = self.vendor_expense(vendor_id, column)
            for product in products:
                self.set_allocation(vendor_id, product, column, target_total * shares[product])

    def summary(self, vendor_id: str) -> AllocationSummary:
        total_expense = sum(self.vendor_expense(vendor_id, column) for column in self.columns)
        total_allocated = sum(self.total_allocated(vendor_id, column) for column in self.columns)
        remaining = total_expense - total_allocated
        return AllocationSummary(
            total_expense=total_expense,
            total_allocated=total_allocated,
            remaining=remaining,
            is_balanced=abs(remaining) < BALANCE_TOLERANCE,
        )

    def load(self, db: Database) -> None:
        """Replace the in-memory allocations with the stored ones."""
        self.allocations = db.get_allocations()

    def save(self, db: Database) -> int:
        """Store the allocations of every vendor held by the ledger.

        Returns:
            Number of allocation rows stored.
        """
        stored = db.save_allocations(self.allocations)
        total = sum(
            amount
            for by_product in self.allocations.values()
            for by_column in by_product.values()
            for amount in by_column.values()
        )
        audit.log_allocations_saved(vendor_count=len(self.allocations), total_amount=total)
        return stored

"""Expense data service: moves planner state to and from the database."""

from collections.abc import Iterable, Mapping

from .. import audit
from ..db import Database
from ..db.repository import (
    DEFAULT_BATCH_SIZE,
    BatchResult,
    ExpenseRow,
    ReplaceResult,
    Vendor,
    generate_vendor_code,
)
from ..dimensions import validate_version
from ..errors import DataAccessError
from ..logging import get_logger
from .models import ExpenseDataView, PlannerVendor, VendorSummary

logger = get_logger(__name__)


def _vendor_fields(vendor: PlannerVendor) -> dict[str, str]:
    return {
        "name": vendor.name,
        "category": vendor.category,
        "vendor_code": vendor.vendor_code,
        "gl_account": vendor.gl_account,
        "cost_center": vendor.cost_center,
    }


class ExpenseDataService:
    """Service for loading and saving vendors and expense figures."""

    def __init__(self, db: Database, batch_size: int = DEFAULT_BATCH_SIZE):
        self.db = db
        self.batch_size = batch_size

    def load_expense_data(self) -> ExpenseDataView:
        """Load every vendor plus the figures of all versions.

        Vendors stored without a code get a freshly generated one in the
        returned view.
        """
        try:
            stored_vendors = self.db.get_vendors()
            rows = self.db.get_expense_data()
        except DataAccessError as e:
            raise DataAccessError(f"Failed to load expense data: {e.message}") from e

        vendors: list[VendorSummary] = []
        gl_accounts: dict[str, str] = {}
        cost_centers: dict[str, str] = {}
        expenses: dict[str, dict[str, float]] = {}

        for vendor in stored_vendors:
            vendors.append(
                VendorSummary(
                    id=vendor.id,
                    name=vendor.name,
                    category=vendor.category or "",
                    vendor_code=vendor.vendor_code or generate_vendor_code(),
                )
            )
            gl_accounts[vendor.id] = vendor.gl_account or ""
            cost_centers[vendor.id] = vendor.cost_center or ""
            expenses[vendor.id] = {}

        for row in rows:
            expenses.setdefault(row.vendor_id, {})[row.month] = float(row.amount)

        return ExpenseDataView(
            vendors=vendors,
            gl_accounts=gl_accounts,
            cost_centers=cost_centers,
            expenses=expenses,
        )

    def load_expense_data_for_version(self, version: str) -> dict[str, dict[str, float]]:
        """Return {vendor_id: {month: amount}} for one version."""
        validate_version(version)
        try:
            rows = self.db.get_expense_data(version)
        except DataAccessError as e:
            raise DataAccessError(f"Failed to load {version} expense data: {e.message}") from e

        expenses: dict[str, dict[str, float]] = {}
        for row in rows:
            expenses.setdefault(row.vendor_id, {})[row.month] = float(row.amount)
        return expenses

    def existing_vendor_ids(self, vendor_ids: Iterable[str]) -> set[str]:
        return self.db.existing_vendor_ids(vendor_ids)

    def save_vendors(self, vendors: Iterable[PlannerVendor]) -> int:
        """Update stored vendors and insert new ones under their client id.

        Vendors missing from ``vendors`` are left alone.

        Returns:
            Number of vendors written.
        """
        vendors = list(vendors)
        try:
            existing = self.db.existing_vendor_ids(v.id for v in vendors)
            for vendor in vendors:
                if vendor.id in existing:
                    self.db.update_vendor(vendor.id, _vendor_fields(vendor))
                    audit.log_vendor_updated(vendor.id, vendor.name)
                else:
                    stored = self.db.save_vendor(_vendor_fields(vendor), vendor_id=vendor.id)
                    audit.log_vendor_created(stored.id, stored.name, stored.vendor_code or "")
        except DataAccessError as e:
            raise DataAccessError(f"Failed to save vendors: {e.message}") from e

        logger.info("vendors_saved", count=len(vendors), updated=len(existing))
        return len(vendors)

    def save_version_expense_data(
        self,
        version: str,
        expenses: Mapping[str, Mapping[str, float]],
    ) -> ReplaceResult:
        """Replace one version's figures for the given vendors.

        Vendors that are not in the database are skipped.
        """
        validate_version(version)
        try:
            result = self.db.replace_version_expenses(version, expenses, self.batch_size)
        except DataAccessError as e:
            raise DataAccessError(f"Failed to save expense data for {version}: {e.message}") from e

        audit.log_expenses_saved(
            version,
            vendor_count=len(expenses) - len(result.skipped_vendor_ids),
            row_count=result.saved,
            skipped_vendors=len(result.skipped_vendor_ids),
        )
        return result

    def reconcile_version(
        self,
        version: str,
        vendors: list[VendorSummary],
        gl_accounts: Mapping[str, str],
        cost_centers: Mapping[str, str],
        expenses: Mapping[str, Mapping[str, float]],
    ) -> BatchResult:
        """Make the database match one version of the client state.

        Stored vendors absent from ``vendors`` are deleted, the rest are
        updated or inserted, and every monthly figure is upserted.
        """
        validate_version(version)
        try:
            stored_ids = {v.id for v in self.db.get_vendors()}
            state_ids = {v.id for v in vendors}

            for vendor_id in sorted(stored_ids - state_ids):
                self.db.delete_vendor(vendor_id)
                audit.log_vendor_deleted(vendor_id)

            id_mapping: dict[str, str] = {}
            for vendor in vendors:
                fields = {
                    "name": vendor.name,
                    "category": vendor.category,
                    "vendor_code": vendor.vendor_code,
                    "gl_account": gl_accounts.get(vendor.id, ""),
                    "cost_center": cost_centers.get(vendor.id, ""),
                }
                if vendor.id in stored_ids:
                    saved = self.db.update_vendor(vendor.id, fields)
                else:
                    saved = self.db.save_vendor(fields, vendor_id=vendor.id)
                id_mapping[vendor.id] = saved.id

            rows = [
                ExpenseRow(
                    vendor_id=id_mapping.get(vendor.id, vendor.id),
                    version=version,
                    month=month,
                    amount=amount or 0,
                )
                for vendor in vendors
                for month, amount in expenses.get(vendor.id, {}).items()
            ]
            result = self.db.save_expense_data_batch(rows, self.batch_size)
        except DataAccessError as e:
            raise DataAccessError(f"Failed to save {version} expense data: {e.message}") from e

        audit.log_expenses_saved(
            version,
            vendor_count=len(vendors),
            row_count=result.saved,
            skipped_vendors=len({row.vendor_id for row in result.failed}),
        )
        return result

    def delete_vendor(self, vendor_id: str) -> bool:
        """Delete a vendor and its figures in every version."""
        try:
            deleted = self.db.delete_vendor(vendor_id)
        except DataAccessError as e:
            raise DataAccessError(f"Failed to delete vendor: {e.message}") from e
        if deleted:
            audit.log_vendor_deleted(vendor_id)
        return deleted

    def edit_vendor(self, vendor_id: str, name: str, gl_account: str, cost_center: str) -> Vendor:
        """Rename or re-file a stored vendor; its category follows the GL account."""
        try:
            vendor = self.db.update_vendor(
                vendor_id,
                {
                    "name": name,
                    "category": gl_account,
                    "gl_account": gl_account,
                    "cost_center": cost_center,
                },
            )
        except DataAccessError as e:
            raise DataAccessError(f"Failed to update vendor: {e.message}") from e
        audit.log_vendor_updated(vendor_id, name)
        return vendor


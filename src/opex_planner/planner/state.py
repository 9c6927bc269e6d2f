"""ExpensePlanner: the in-memory vendor registry and per-version ledgers.

The planner holds one working copy of every version (Actuals, Live Forecast,
Budget) keyed by vendor id and month, tracks which vendors and figures have
changed, and pushes only those changes to the database on save.
"""

import uuid
from collections.abc import Callable

from .. import audit
from ..config import PlanningConfig
from ..db.repository import generate_vendor_code
from ..dimensions import ALL, LIVE_FORECAST, VERSIONS, validate_version
from ..errors import InvalidVendorError, PlannerError, VendorNotFoundError
from ..logging import get_logger
from ..periods import (
    MONTHLY,
    column_value,
    distribute,
    empty_months,
    is_forecast_period,
    month_labels,
    validate_granularity,
)
from .models import (
    NOTICE_CANCELLED,
    NOTICE_SUCCESS,
    ChangeTracking,
    ExpenseDataView,
    Notice,
    PlannerVendor,
    VendorSummary,
    VersionData,
)
from .sample_data import sample_expenses, sample_registry
from .service import ExpenseDataService

logger = get_logger(__name__)


class ExpensePlanner:
    """Client-side planning state for one user session."""

    def __init__(self, planning: PlanningConfig | None = None):
        self.planning = planning or PlanningConfig()

        self.version: str = LIVE_FORECAST
        self.time_granularity: str = MONTHLY
        self.gl_account: str = ALL
        self.selected_cost_centers: list[str] = [ALL]
        self.year: int = self.planning.fiscal_year

        self.is_loading = False
        self.is_saving = False
        self.data_loaded = False
        self.notice: Notice | None = None

        self.registry: dict[str, PlannerVendor] = {}
        self.version_data: dict[str, VersionData] = {v: VersionData() for v in VERSIONS}
        self.change_tracking = ChangeTracking()
        self.deleted_vendor_ids: set[str] = set()

    # Filters

    def set_version(self, version: str) -> None:
        self.version = validate_version(version)

    def set_time_granularity(self, granularity: str) -> None:
        self.time_granularity = validate_granularity(granularity)

    def set_gl_account(self, gl_account: str) -> None:
        if gl_account != ALL and gl_account not in self.planning.gl_accounts:
            raise ValueError(f"Unknown GL account: {gl_account!r}")
        self.gl_account = gl_account

    def set_selected_cost_centers(self, cost_centers: list[str]) -> None:
        """Select cost centers; an empty selection means all of them."""
        for cost_center in cost_centers:
            if cost_center != ALL and cost_center not in self.planning.cost_centers:
                raise ValueError(f"Unknown cost center: {cost_center!r}")
        self.selected_cost_centers = list(cost_centers) or [ALL]

    def set_year(self, year: int) -> None:
        self.year = year

    def clear_notice(self) -> None:
        self.notice = None

    @property
    def months(self) -> list[str]:
        return month_labels(self.year)

    def is_forecast_period(self, month: str) -> bool:
        return is_forecast_period(month, self.year, self.planning.closed_months)

    # Views

    @property
    def expense_data(self) -> ExpenseDataView:
        """The selected version composed with the vendor registry."""
        return self.view_for(self.version)

    def view_for(self, version: str) -> ExpenseDataView:
        current = self.version_data[validate_version(version)]
        vendors = []
        gl_accounts = {}
        cost_centers = {}
        for vendor_id in current.vendor_ids:
            vendor = self.registry.get(vendor_id)
            vendors.append(
                VendorSummary(
                    id=vendor_id,
                    name=vendor.name if vendor else "",
                    category=vendor.category if vendor else "",
                    vendor_code=vendor.vendor_code if vendor else "",
                )
            )
            gl_accounts[vendor_id] = vendor.gl_account if vendor else ""
            cost_centers[vendor_id] = vendor.cost_center if vendor else ""
        return ExpenseDataView(
            vendors=vendors,
            gl_accounts=gl_accounts,
            cost_centers=cost_centers,
            expenses=current.expenses,
        )

    def expenses_for(self, version: str) -> dict[str, dict[str, float]]:
        return self.version_data[validate_version(version)].expenses

    # Vendor registry

    def _validate_vendor_fields(self, name: str, gl_account: str, cost_center: str) -> None:
        if cost_center == ALL:
            raise InvalidVendorError("'All Cost Centers' is not a valid cost center for vendors")
        if not name or not name.strip():
            raise InvalidVendorError("Vendor name is required")
        if gl_account not in self.planning.gl_accounts:
            raise InvalidVendorError(f"Unknown GL account: {gl_account}")
        if cost_center not in self.planning.cost_centers:
            raise InvalidVendorError(f"Unknown cost center: {cost_center}")

    def add_vendor(self, name: str, gl_account: str, cost_center: str) -> str:
        """Register a new vendor with zero figures in every version.

        Returns:
            The new vendor's id.

        Raises:
            InvalidVendorError: If the fields are invalid.
        """
        try:
            self._validate_vendor_fields(name, gl_account, cost_center)
        except PlannerError as e:
            self.notice = Notice(f"Failed to add vendor: {e.message}")
            raise

        vendor_id = str(uuid.uuid4())
        self.registry[vendor_id] = PlannerVendor(
            id=vendor_id,
            name=name.strip(),
            category=gl_account,
            vendor_code=generate_vendor_code(),
            gl_account=gl_account,
            cost_center=cost_center,
        )
        self.change_tracking.mark_vendor(vendor_id)

        for version, data in self.version_data.items():
            data.vendor_ids.append(vendor_id)
            data.expenses[vendor_id] = empty_months(self.year)
            self.change_tracking.mark_expenses(version, vendor_id)

        # New vendors are edited in the Live Forecast
        self.version = LIVE_FORECAST

        if ALL not in self.selected_cost_centers and cost_center not in self.selected_cost_centers:
            self.selected_cost_centers = [*self.selected_cost_centers, cost_center]

        logger.info("vendor_added", vendor_id=vendor_id, name=name)
        return vendor_id

    def edit_vendor(self, vendor_id: str, name: str, gl_account: str, cost_center: str) -> None:
        """Change a vendor's name, GL account (and so category) and cost center."""
        try:
            self._validate_vendor_fields(name, gl_account, cost_center)
            vendor = self.registry.get(vendor_id)
            if vendor is None:
                raise VendorNotFoundError(vendor_id)
        except PlannerError as e:
            self.notice = Notice(f"Failed to edit vendor: {e.message}")
            raise

        vendor.name = name.strip()
        vendor.category = gl_account
        vendor.gl_account = gl_account
        vendor.cost_center = cost_center
        self.change_tracking.mark_vendor(vendor_id)

    def delete_vendor(self, vendor_id: str) -> None:
        """Remove a vendor from the registry and every version.

        The id is remembered so the next save deletes it from the database.
        """
        if vendor_id not in self.registry:
            error = VendorNotFoundError(vendor_id)
            self.notice = Notice(f"Failed to delete vendor: {error.message}")
            raise error

        self.deleted_vendor_ids.add(vendor_id)
        for data in self.version_data.values():
            data.vendor_ids = [vid for vid in data.vendor_ids if vid != vendor_id]
            data.expenses.pop(vendor_id, None)
        del self.registry[vendor_id]
        self.change_tracking.is_data_changed = True

    def delete_all_vendors(self) -> None:
        self.deleted_vendor_ids.update(self.registry)
        self.version_data = {v: VersionData() for v in VERSIONS}
        self.registry = {}
        self.change_tracking.is_data_changed = True

    # Figures

    def update_expense(self, vendor_id: str, month: str, amount: float) -> bool:
        """Set one monthly figure in the selected version.

        Returns:
            False when the value is unchanged and nothing was recorded.

        Raises:
            VendorNotFoundError: vendor_id is not in the registry.
        """
        if vendor_id not in self.registry:
            raise VendorNotFoundError(vendor_id)
        if month not in self.months:
            raise ValueError(f"Unknown month: {month!r}")

        current = self.version_data[self.version]
        if current.expenses.get(vendor_id, {}).get(month, 0) == amount:
            return False

        if vendor_id not in current.vendor_ids:
            current.vendor_ids.append(vendor_id)
        current.expenses.setdefault(vendor_id, {})[month] = amount
        self.change_tracking.mark_expenses(self.version, vendor_id)
        return True

    def get_period_value(self, vendor_id: str, column: str) -> float:
        """Grid cell value at the selected granularity."""
        expenses = self.version_data[self.version].expenses.get(vendor_id)
        return column_value(expenses, column, self.time_granularity, self.year)

    def set_period_value(self, vendor_id: str, column: str, amount: float) -> bool:
        """Write a grid cell; quarterly and annual figures are spread evenly."""
        changed = False
        for month, share in distribute(amount, column, self.time_granularity, self.year).items():
            changed = self.update_expense(vendor_id, month, share) or changed
        return changed

    def synchronize_versions(self) -> None:
        """Copy the selected version's figures onto the other two versions."""
        source_version = self.version
        source = self.version_data[source_version]
        for vendor_id in self.registry:
            figures = source.expenses.get(vendor_id, {})
            for target_version in VERSIONS:
                if target_version == source_version:
                    continue
                target = self.version_data[target_version]
                if vendor_id not in target.vendor_ids:
                    target.vendor_ids.append(vendor_id)
                target.expenses[vendor_id] = dict(figures)
                self.change_tracking.mark_expenses(target_version, vendor_id)

        audit.log_versions_synchronized(source_version, len(self.registry))
        self.notice = Notice(
            f"Data synchronized across all versions using {source_version} as source",
            code=NOTICE_SUCCESS,
        )

    def backfill_versions(self) -> None:
        """Make every version list every vendor, with a figure for every month."""
        all_ids: list[str] = []
        for data in self.version_data.values():
            all_ids.extend(vid for vid in data.vendor_ids if vid not in all_ids)

        for data in self.version_data.values():
            for vendor_id in all_ids:
                if vendor_id not in data.vendor_ids:
                    data.vendor_ids.append(vendor_id)
                figures = data.expenses.setdefault(vendor_id, {})
                for month in self.months:
                    figures.setdefault(month, 0.0)

    # Persistence

    def save(
        self,
        service: ExpenseDataService,
        confirm_empty: Callable[[], bool] | None = None,
    ) -> Notice:
        """Push changed vendors, deletions and changed figures to the database.

        Args:
            service: Data service bound to the database.
            confirm_empty: Asked before saving an empty registry. Without it
                the save is cancelled.

        Returns:
            The resulting notice (also stored on ``self.notice``).
        """
        self.is_saving = True
        self.notice = None
        try:
            if not self.change_tracking.is_data_changed and not self.deleted_vendor_ids:
                logger.info("save_skipped", reason="no_changes")
                self.notice = Notice("No changes to save", code=NOTICE_SUCCESS)
                return self.notice

            if not self.registry and (confirm_empty is None or not confirm_empty()):
                self.notice = Notice("Save operation cancelled", code=NOTICE_CANCELLED)
                return self.notice

            self.backfill_versions()

            # Only vendors explicitly deleted here and still stored are removed
            to_delete = sorted(service.existing_vendor_ids(self.deleted_vendor_ids))

            changed = self.change_tracking.changed_vendors
            to_save = [vendor for vid, vendor in self.registry.items() if vid in changed]
            if to_save:
                service.save_vendors(to_save)

            for vendor_id in to_delete:
                service.delete_vendor(vendor_id)

            failed_versions = []
            for version in VERSIONS:
                expenses = self.version_data[version].expenses
                version_expenses = {
                    vid: expenses[vid]
                    for vid in self.registry
                    if vid in self.change_tracking.changed_expenses[version] and vid in expenses
                }
                if not version_expenses:
                    continue
                try:
                    service.save_version_expense_data(version, version_expenses)
                except PlannerError as e:
                    # Keep going with the remaining versions
                    logger.error("version_save_failed", version=version, error=e.message)
                    failed_versions.append(version)

            self.deleted_vendor_ids = set()
            self.change_tracking.reset()
            logger.info(
                "data_saved",
                vendors=len(to_save),
                deleted=len(to_delete),
                failed_versions=failed_versions,
            )
            self.notice = Notice(
                "Data saved successfully",
                code=NOTICE_SUCCESS,
                details=(
                    f"Figures not saved for: {', '.join(failed_versions)}"
                    if failed_versions
                    else None
                ),
            )
        except PlannerError as e:
            logger.error("save_failed", error=e.message)
            self.notice = Notice(f"Failed to save data: {e.message}", details=e.code)
        finally:
            self.is_saving = False
        return self.notice

    def load(self, service: ExpenseDataService) -> Notice | None:
        """Rebuild the registry and ledgers from the database.

        Falls back to the sample data when the database cannot be read.
        """
        self.is_loading = True
        self.notice = None
        try:
            data = service.load_expense_data()
            registry = {
                vendor.id: PlannerVendor(
                    id=vendor.id,
                    name=vendor.name,
                    category=vendor.category,
                    vendor_code=vendor.vendor_code,
                    gl_account=data.gl_accounts.get(vendor.id, ""),
                    cost_center=data.cost_centers.get(vendor.id, ""),
                )
                for vendor in data.vendors
            }
            vendor_ids = [vendor.id for vendor in data.vendors]
            version_data = {
                version: VersionData(
                    vendor_ids=list(vendor_ids),
                    expenses=service.load_expense_data_for_version(version),
                )
                for version in VERSIONS
            }

            self.registry = registry
            self.version_data = version_data
            self.deleted_vendor_ids = set()
            self.change_tracking.reset()
            self.data_loaded = True
            logger.info("data_loaded", vendors=len(registry))
        except PlannerError as e:
            logger.warning("load_failed_using_sample_data", error=e.message)
            self.notice = Notice(
                "Failed to load data from database, using sample data",
                details=e.message,
            )
            self.initialize_sample_data()
        finally:
            self.is_loading = False
        return self.notice

    def initialize_sample_data(self) -> None:
        """Replace the state with the built-in sample vendors and figures."""
        self.registry = sample_registry()
        vendor_ids = list(self.registry)
        self.version_data = {
            version: VersionData(vendor_ids=list(vendor_ids), expenses=expenses)
            for version, expenses in sample_expenses(self.year).items()
        }
        self.change_tracking.reset()

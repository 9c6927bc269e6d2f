"""In-memory planner records."""

from dataclasses import dataclass, field

from ..dimensions import VERSIONS

NOTICE_SUCCESS = "SUCCESS"
NOTICE_ERROR = "ERROR"
NOTICE_CANCELLED = "CANCELLED"


@dataclass
class PlannerVendor:
    """Vendor as held in the planner's registry."""

    id: str
    name: str
    category: str
    vendor_code: str
    gl_account: str
    cost_center: str


@dataclass
class VendorSummary:
    """Vendor columns shown in the grid."""

    id: str
    name: str
    category: str
    vendor_code: str


@dataclass
class VersionData:
    """One version's ledger: the vendors it lists and their monthly figures."""

    vendor_ids: list[str] = field(default_factory=list)
    expenses: dict[str, dict[str, float]] = field(default_factory=dict)


def _empty_changed_expenses() -> dict[str, set[str]]:
    return {version: set() for version in VERSIONS}


@dataclass
class ChangeTracking:
    """Vendors and (version, vendor) figures changed since the last load or save."""

    changed_vendors: set[str] = field(default_factory=set)
    changed_expenses: dict[str, set[str]] = field(default_factory=_empty_changed_expenses)
    is_data_changed: bool = False

    def mark_vendor(self, vendor_id: str) -> None:
        self.changed_vendors.add(vendor_id)
        self.is_data_changed = True

    def mark_expenses(self, version: str, vendor_id: str) -> None:
        self.changed_expenses[version].add(vendor_id)
        self.is_data_changed = True

    def reset(self) -> None:
        self.changed_vendors = set()
        self.changed_expenses = _empty_changed_expenses()
        self.is_data_changed = False


@dataclass
class Notice:
    """User-visible status message (rendered as a toast)."""

    message: str
    code: str = NOTICE_ERROR
    details: str | None = None

    @property
    def is_error(self) -> bool:
        return self.code == NOTICE_ERROR


@dataclass
class ExpenseDataView:
    """The selected version composed with the vendor registry."""

    vendors: list[VendorSummary]
    gl_accounts: dict[str, str]
    cost_centers: dict[str, str]
    expenses: dict[str, dict[str, float]]

    def vendor(self, vendor_id: str) -> VendorSummary | None:
        for vendor in self.vendors:
            if vendor.id == vendor_id:
                return vendor
        return None

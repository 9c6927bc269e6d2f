"""Planner state: vendor registry, version ledgers and change tracking."""

from .filters import (
    ASCENDING,
    DESCENDING,
    Grid,
    GridRow,
    build_grid,
    filter_vendors,
    sort_vendors,
)
from .models import (
    NOTICE_CANCELLED,
    NOTICE_ERROR,
    NOTICE_SUCCESS,
    ChangeTracking,
    ExpenseDataView,
    Notice,
    PlannerVendor,
    VendorSummary,
    VersionData,
)
from .service import ExpenseDataService
from .state import ExpensePlanner

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "NOTICE_CANCELLED",
    "NOTICE_ERROR",
    "NOTICE_SUCCESS",
    "ChangeTracking",
    "ExpenseDataService",
    "ExpenseDataView",
    "ExpensePlanner",
    "Grid",
    "GridRow",
    "Notice",
    "PlannerVendor",
    "VendorSummary",
    "VersionData",
    "build_grid",
    "filter_vendors",
    "sort_vendors",
]

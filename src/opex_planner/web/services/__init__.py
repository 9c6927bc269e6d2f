"""Web services for the planner views."""

from .dashboard_service import DashboardService

__all__ = ["DashboardService"]

"""Audit logging for planning operations.

Emits structured log events that can be consumed by Splunk, Elasticsearch,
or any log aggregator that supports JSON or key=value format.

Configure via config.yaml:
    logging:
      enabled: true  # set to false to disable audit logging
      level: INFO
      format: json  # or 'splunk' for key=value format
      file: /var/log/opex-planner/audit.log  # optional, audit events only
"""

from typing import Any

import structlog

AUDIT_LOGGER_NAME = "audit"

_logger: structlog.stdlib.BoundLogger | None = None
_enabled: bool = True


def configure(enabled: bool = True) -> None:
    """Configure the audit logger.

    Args:
        enabled: Whether audit logging is enabled.
    """
    global _enabled
    _enabled = enabled


def _get_logger() -> structlog.stdlib.BoundLogger:
    """Get or create the audit logger."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(AUDIT_LOGGER_NAME)
    return _logger


def _emit(
    event_type: str,
    action: str,
    **kwargs: Any,
) -> None:
    """Emit an audit log event.

    Args:
        event_type: Category of event (vendor, expenses, tags, allocations, database)
        action: Specific action (created, updated, deleted, saved, etc.)
        **kwargs: Additional event-specific fields
    """
    if not _enabled:
        return

    _get_logger().info(
        f"{event_type}.{action}",
        event_type=event_type,
        action=action,
        **kwargs,
    )


# Vendor events
def log_vendor_created(vendor_id: str, name: str, vendor_code: str, user: str | None = None) -> None:
    """Log a vendor creation persisted to the store."""
    _emit(
        "vendor",
        "created",
        vendor_id=vendor_id,
        name=name,
        vendor_code=vendor_code,
        user=user or "system",
    )


def log_vendor_updated(vendor_id: str, name: str, user: str | None = None) -> None:
    """Log a vendor update persisted to the store."""
    _emit("vendor", "updated", vendor_id=vendor_id, name=name, user=user or "system")


def log_vendor_deleted(vendor_id: str, user: str | None = None) -> None:
    """Log a vendor deletion (expense rows in every version go with it)."""
    _emit("vendor", "deleted", vendor_id=vendor_id, user=user or "system")


# Expense events
def log_expenses_saved(
    version: str,
    vendor_count: int,
    row_count: int,
    skipped_vendors: int = 0,
    user: str | None = None,
) -> None:
    """Log a version save."""
    _emit(
        "expenses",
        "saved",
        version=version,
        vendor_count=vendor_count,
        row_count=row_count,
        skipped_vendors=skipped_vendors,
        user=user or "system",
    )


def log_versions_synchronized(source_version: str, vendor_count: int) -> None:
    """Log a copy of one version's figures onto the others."""
    _emit(
        "expenses",
        "synchronized",
        source_version=source_version,
        vendor_count=vendor_count,
    )


def log_expenses_imported(
    filename: str,
    version: str,
    row_count: int,
    total_amount: float,
    error_count: int = 0,
) -> None:
    """Log a CSV import of expense figures."""
    _emit(
        "expenses",
        "imported",
        filename=filename,
        version=version,
        row_count=row_count,
        total_amount=round(total_amount, 2),
        error_count=error_count,
    )


# Product events
def log_tags_saved(vendor_count: int, tag_count: int) -> None:
    """Log a save of vendor product tags."""
    _emit("tags", "saved", vendor_count=vendor_count, tag_count=tag_count)


def log_allocations_saved(vendor_count: int, total_amount: float) -> None:
    """Log a save of product allocations."""
    _emit(
        "allocations",
        "saved",
        vendor_count=vendor_count,
        total_amount=round(total_amount, 2),
    )


# Database events
def log_database_seeded(vendor_count: int, row_count: int) -> None:
    """Log a reseed of the sample database."""
    _emit("database", "seeded", vendor_count=vendor_count, row_count=row_count)

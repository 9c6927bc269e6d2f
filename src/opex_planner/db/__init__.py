"""Database layer with SQLAlchemy Core abstraction.

Supports SQLite (default) and PostgreSQL for production.
"""

from .engine import create_db_engine, get_dialect, initialize_schema
from .repository import (
    BatchResult,
    Database,
    ExpenseRow,
    ExpenseViewRow,
    ReplaceResult,
    Vendor,
    generate_vendor_code,
)
from .tables import SCHEMA_VERSION, metadata

__all__ = [
    "BatchResult",
    "Database",
    "ExpenseRow",
    "ExpenseViewRow",
    "ReplaceResult",
    "SCHEMA_VERSION",
    "Vendor",
    "create_db_engine",
    "generate_vendor_code",
    "get_dialect",
    "initialize_schema",
    "metadata",
]

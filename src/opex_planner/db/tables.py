"""SQLAlchemy table definitions for opex-planner."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    func,
)

from ..dimensions import VERSIONS

# Use naming convention for constraints (helps with migrations)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Schema version tracking
schema_version = Table(
    "schema_version",
    metadata,
    Column("version", Integer, primary_key=True),
    Column("applied_at", DateTime, server_default=func.now()),
)

# Vendors
vendors = Table(
    "vendors",
    metadata,
    Column("id", String(36), primary_key=True),  # UUID
    Column("name", String(200), nullable=False),
    Column("category", String(100)),
    Column("vendor_code", String(20)),  # VND-XXXX
    Column("gl_account", String(100)),
    Column("cost_center", String(100)),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
    CheckConstraint("cost_center <> 'All'", name="cost_center_check"),
)

Index("idx_vendors_name", vendors.c.name)

_version_list = ", ".join(f"'{v}'" for v in VERSIONS)

# Expense figures, one row per vendor x version x month
expense_data = Table(
    "expense_data",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "vendor_id",
        String(36),
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("version", String(20), nullable=False),
    Column("month", String(10), nullable=False),  # Jan'25
    Column("amount", Float, nullable=False, server_default="0"),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
    UniqueConstraint(
        "vendor_id",
        "version",
        "month",
        name="uq_expense_data_natural_key",
    ),
    CheckConstraint(f"version IN ({_version_list})", name="version_check"),
)

Index("idx_expense_data_version", expense_data.c.version)
Index("idx_expense_data_vendor", expense_data.c.vendor_id)

# Vendor <-> product tags
vendor_product_tags = Table(
    "vendor_product_tags",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "vendor_id",
        String(36),
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("product", String(100), nullable=False),
    Column("created_at", DateTime, server_default=func.now()),
    UniqueConstraint("vendor_id", "product", name="uq_vendor_product_tags_pair"),
)

# Live Forecast spend allocated to products, per grid column
product_allocations = Table(
    "product_allocations",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "vendor_id",
        String(36),
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("product", String(100), nullable=False),
    Column("period", String(10), nullable=False),  # Jan'25, Q1'25 or FY 2025
    Column("amount", Float, nullable=False, server_default="0"),
    Column("updated_at", DateTime, server_default=func.now()),
    UniqueConstraint(
        "vendor_id",
        "product",
        "period",
        name="uq_product_allocations_natural_key",
    ),
)

# Read view joining vendors and expense rows. Kept in its own MetaData so
# create_all() never tries to create it as a table; engine.py issues the DDL.
view_metadata = MetaData()

expense_view = Table(
    "expense_view",
    view_metadata,
    Column("vendor_id", String(36)),
    Column("vendor_name", String(200)),
    Column("category", String(100)),
    Column("gl_account", String(100)),
    Column("cost_center", String(100)),
    Column("version", String(20)),
    Column("month", String(10)),
    Column("amount", Float),
)

EXPENSE_VIEW_SELECT = """
SELECT
    v.id AS vendor_id,
    v.name AS vendor_name,
    v.category AS category,
    v.gl_account AS gl_account,
    v.cost_center AS cost_center,
    e.version AS version,
    e.month AS month,
    e.amount AS amount
FROM expense_data e
JOIN vendors v ON v.id = e.vendor_id
"""

SCHEMA_VERSION = 1

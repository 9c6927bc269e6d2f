"""Data access layer using SQLAlchemy Core."""

import random
import string
import uuid
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..dimensions import ALL, validate_version
from ..errors import DataAccessError, InvalidVendorError, VendorNotFoundError
from ..logging import get_logger
from .engine import create_db_engine, get_dialect, initialize_schema
from .tables import (
    expense_data,
    expense_view,
    product_allocations,
    vendor_product_tags,
    vendors,
)

logger = get_logger(__name__)

VENDOR_CODE_PREFIX = "VND-"
VENDOR_CODE_ALPHABET = string.ascii_uppercase + string.digits

DEFAULT_BATCH_SIZE = 50

_VENDOR_FIELDS = ("name", "category", "vendor_code", "gl_account", "cost_center")


@dataclass
class Vendor:
    """Vendor record."""

    id: str
    name: str
    category: str | None
    vendor_code: str | None
    gl_account: str | None
    cost_center: str | None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class ExpenseRow:
    """One expense figure: vendor x version x month."""

    vendor_id: str
    version: str
    month: str
    amount: float
    id: int | None = None


@dataclass
class ExpenseViewRow:
    """Row of the expense_view (vendor columns joined onto a figure)."""

    vendor_id: str
    vendor_name: str
    category: str | None
    gl_account: str | None
    cost_center: str | None
    version: str
    month: str
    amount: float


@dataclass
class BatchResult:
    """Outcome of a batched expense save."""

    saved: int = 0
    failed: list[ExpenseRow] = field(default_factory=list)
    batches: int = 0

    @property
    def success(self) -> bool:
        return not self.failed


@dataclass
class ReplaceResult:
    """Outcome of replacing one version's figures for a set of vendors."""

    version: str
    saved: int = 0
    skipped_vendor_ids: list[str] = field(default_factory=list)
    batches: int = 0


def generate_vendor_code(rng: random.Random | None = None) -> str:
    """Generate a vendor code like VND-7QX2."""
    chooser = rng or random
    return VENDOR_CODE_PREFIX + "".join(chooser.choices(VENDOR_CODE_ALPHABET, k=4))


def _row_to_dict(row: Any) -> dict:
    """Convert SQLAlchemy row to dict."""
    return dict(row._mapping)


def _format_datetime(dt: datetime | str | None) -> str | None:
    """Format datetime to ISO string."""
    if dt is None:
        return None
    if isinstance(dt, str):
        return dt
    return dt.isoformat()


def _vendor_from_row(row: Any) -> Vendor:
    row_dict = _row_to_dict(row)
    row_dict["created_at"] = _format_datetime(row_dict.get("created_at"))
    row_dict["updated_at"] = _format_datetime(row_dict.get("updated_at"))
    return Vendor(**row_dict)


def _vendor_values(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Pick the writable vendor columns out of a field mapping."""
    values = {key: fields[key] for key in _VENDOR_FIELDS if key in fields}
    if values.get("cost_center") == ALL:
        raise InvalidVendorError("'All' is a filter value, not a cost center")
    return values


def _chunks(items: list, size: int) -> Iterator[list]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class Database:
    """Database connection and operations using SQLAlchemy Core."""

    def __init__(self, db_path: Path | str):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or full connection string.
        """
        self._engine: Engine | None = None
        self._db_path = db_path

    @property
    def engine(self) -> Engine:
        """Get or create database engine."""
        if self._engine is None:
            self._engine = create_db_engine(self._db_path)
        return self._engine

    @property
    def dialect(self) -> str:
        """Get database dialect (sqlite, postgresql)."""
        return get_dialect(self.engine)

    def close(self) -> None:
        """Close database connection."""
        if self._engine:
            self._engine.dispose()
            self._engine = None

    def initialize(self) -> None:
        """Initialize database schema."""
        initialize_schema(self.engine)

    def _upsert(self, table, values: dict, index_elements: list[str], update_columns: list[str]):
        """Create dialect-appropriate upsert statement."""
        if self.dialect == "postgresql":
            stmt = pg_insert(table).values(**values)
        else:  # sqlite
            stmt = sqlite_insert(table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=index_elements,
            set_={col: getattr(stmt.excluded, col) for col in update_columns},
        )

    @contextmanager
    def _operation(self, operation: str) -> Iterator[None]:
        """Log and wrap driver errors as DataAccessError."""
        try:
            yield
        except SQLAlchemyError as e:
            logger.error("database_error", operation=operation, error=str(e))
            raise DataAccessError(f"Failed to {operation}: {e}") from e

    @staticmethod
    def _existing_ids(conn: Connection, vendor_ids: Iterable[str]) -> set[str]:
        ids = list(dict.fromkeys(vendor_ids))
        if not ids:
            return set()
        rows = conn.execute(select(vendors.c.id).where(vendors.c.id.in_(ids))).fetchall()
        return {row.id for row in rows}

    # Vendor operations

    def get_vendors(self) -> list[Vendor]:
        """List all vendors ordered by name."""
        with self._operation("fetch vendors"), self.engine.connect() as conn:
            rows = conn.execute(select(vendors).order_by(vendors.c.name)).fetchall()
            return [_vendor_from_row(row) for row in rows]

    def get_vendor(self, vendor_id: str) -> Vendor | None:
        """Get a vendor by ID."""
        with self._operation("fetch vendor"), self.engine.connect() as conn:
            row = conn.execute(select(vendors).where(vendors.c.id == vendor_id)).fetchone()
            return _vendor_from_row(row) if row else None

    def existing_vendor_ids(self, vendor_ids: Iterable[str]) -> set[str]:
        """Return the subset of vendor_ids present in the vendors table."""
        with self._operation("check vendors"), self.engine.connect() as conn:
            return self._existing_ids(conn, vendor_ids)

    def save_vendor(self, fields: Mapping[str, Any], vendor_id: str | None = None) -> Vendor:
        """Insert a new vendor.

        A UUID is generated when no id is given, and a vendor code when the
        fields carry none.

        Raises:
            InvalidVendorError: If the cost center is 'All' or the name is empty.
            DataAccessError: If the insert fails.
        """
        values = _vendor_values(fields)
        if not values.get("name"):
            raise InvalidVendorError("Vendor name is required")
        values["id"] = vendor_id or fields.get("id") or str(uuid.uuid4())
        if not values.get("vendor_code"):
            values["vendor_code"] = generate_vendor_code()

        with self._operation("save vendor"), self.engine.begin() as conn:
            conn.execute(vendors.insert().values(**values))
            row = conn.execute(select(vendors).where(vendors.c.id == values["id"])).fetchone()

        logger.debug("vendor_inserted", vendor_id=values["id"], name=values["name"])
        return _vendor_from_row(row)

    def update_vendor(self, vendor_id: str, fields: Mapping[str, Any]) -> Vendor:
        """Update a vendor, inserting it under vendor_id if it does not exist."""
        values = _vendor_values(fields)

        with self._operation("update vendor"), self.engine.begin() as conn:
            exists = conn.execute(
                select(vendors.c.id).where(vendors.c.id == vendor_id)
            ).fetchone()

            if exists:
                if values:
                    conn.execute(
                        update(vendors)
                        .where(vendors.c.id == vendor_id)
                        .values(**values, updated_at=datetime.now())
                    )
            else:
                logger.info("vendor_missing_on_update", vendor_id=vendor_id)
                if not values.get("vendor_code"):
                    values["vendor_code"] = generate_vendor_code()
                conn.execute(vendors.insert().values(id=vendor_id, **values))

            row = conn.execute(select(vendors).where(vendors.c.id == vendor_id)).fetchone()
            return _vendor_from_row(row)

    def delete_vendor(self, vendor_id: str) -> bool:
        """Delete a vendor and everything that references it.

        Expense rows in every version, product tags and allocations are
        removed explicitly before the vendor row.

        Returns:
            True if a vendor row was deleted.
        """
        with self._operation("delete vendor"), self.engine.begin() as conn:
            conn.execute(delete(expense_data).where(expense_data.c.vendor_id == vendor_id))
            conn.execute(
                delete(vendor_product_tags).where(vendor_product_tags.c.vendor_id == vendor_id)
            )
            conn.execute(
                delete(product_allocations).where(product_allocations.c.vendor_id == vendor_id)
            )
            result = conn.execute(delete(vendors).where(vendors.c.id == vendor_id))
            return result.rowcount > 0

    # Expense operations

    def get_expense_data(self, version: str | None = None) -> list[ExpenseRow]:
        """List expense rows, optionally for a single version."""
        stmt = select(
            expense_data.c.id,
            expense_data.c.vendor_id,
            expense_data.c.version,
            expense_data.c.month,
            expense_data.c.amount,
        )
        if version is not None:
            stmt = stmt.where(expense_data.c.version == validate_version(version))
        stmt = stmt.order_by(expense_data.c.vendor_id, expense_data.c.id)

        with self._operation("fetch expense data"), self.engine.connect() as conn:
            return [ExpenseRow(**_row_to_dict(row)) for row in conn.execute(stmt).fetchall()]

    def _expense_upsert(self, row: ExpenseRow):
        return self._upsert(
            expense_data,
            {
                "vendor_id": row.vendor_id,
                "version": row.version,
                "month": row.month,
                "amount": row.amount,
                "updated_at": datetime.now(),
            },
            index_elements=["vendor_id", "version", "month"],
            update_columns=["amount", "updated_at"],
        )

    def save_expense_data(self, row: ExpenseRow) -> ExpenseRow:
        """Insert or update a single figure.

        Raises:
            VendorNotFoundError: If the vendor does not exist.
        """
        validate_version(row.version)
        with self._operation("save expense data"), self.engine.begin() as conn:
            if not self._existing_ids(conn, [row.vendor_id]):
                raise VendorNotFoundError(row.vendor_id, "the vendors table")
            conn.execute(self._expense_upsert(row))
            stored = conn.execute(
                select(
                    expense_data.c.id,
                    expense_data.c.vendor_id,
                    expense_data.c.version,
                    expense_data.c.month,
                    expense_data.c.amount,
                ).where(
                    expense_data.c.vendor_id == row.vendor_id,
                    expense_data.c.version == row.version,
                    expense_data.c.month == row.month,
                )
            ).fetchone()
            return ExpenseRow(**_row_to_dict(stored))

    def save_expense_data_batch(
        self,
        rows: list[ExpenseRow],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> BatchResult:
        """Upsert figures in batches, one transaction per batch.

        Rows whose vendor no longer exists are skipped and reported in
        ``BatchResult.failed`` instead of aborting the batch.
        """
        for row in rows:
            validate_version(row.version)

        result = BatchResult()
        for chunk in _chunks(rows, batch_size):
            with self._operation("save expense data batch"), self.engine.begin() as conn:
                known = self._existing_ids(conn, (row.vendor_id for row in chunk))
                for row in chunk:
                    if row.vendor_id not in known:
                        result.failed.append(row)
                        continue
                    conn.execute(self._expense_upsert(row))
                    result.saved += 1
            result.batches += 1

        if result.failed:
            logger.warning(
                "expense_rows_skipped",
                reason="vendor_not_found",
                count=len(result.failed),
                vendor_ids=sorted({row.vendor_id for row in result.failed}),
            )
        return result

    def delete_expense_data(self, vendor_id: str, version: str | None = None) -> int:
        """Delete a vendor's figures in one version, or in all of them."""
        stmt = delete(expense_data).where(expense_data.c.vendor_id == vendor_id)
        if version is not None:
            stmt = stmt.where(expense_data.c.version == validate_version(version))
        with self._operation("delete expense data"), self.engine.begin() as conn:
            return conn.execute(stmt).rowcount

    def replace_version_expenses(
        self,
        version: str,
        expenses: Mapping[str, Mapping[str, float]],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> ReplaceResult:
        """Replace one version's figures for the vendors in ``expenses``.

        Vendors are checked in a single query; unknown vendors are skipped.
        The stored rows for (version, vendor) are deleted and the new monthly
        rows inserted in batches, all inside one transaction.

        Args:
            version: Version being saved.
            expenses: {vendor_id: {month: amount}}.
            batch_size: Rows per insert batch.
        """
        validate_version(version)
        result = ReplaceResult(version=version)

        with self._operation(f"save {version} expense data"), self.engine.begin() as conn:
            known = self._existing_ids(conn, expenses.keys())
            result.skipped_vendor_ids = [vid for vid in expenses if vid not in known]
            if result.skipped_vendor_ids:
                logger.warning(
                    "vendors_skipped",
                    version=version,
                    vendor_ids=result.skipped_vendor_ids,
                )

            kept = [vid for vid in expenses if vid in known]
            if not kept:
                return result

            conn.execute(
                delete(expense_data).where(
                    expense_data.c.version == version,
                    expense_data.c.vendor_id.in_(kept),
                )
            )

            rows = [
                {
                    "vendor_id": vendor_id,
                    "version": version,
                    "month": month,
                    "amount": amount or 0,
                }
                for vendor_id in kept
                for month, amount in expenses[vendor_id].items()
            ]
            for chunk in _chunks(rows, batch_size):
                conn.execute(expense_data.insert(), chunk)
                result.batches += 1
            result.saved = len(rows)

        return result

    def get_expense_view(self, version: str | None = None) -> list[ExpenseViewRow]:
        """Read the joined vendor/expense view."""
        stmt = select(expense_view)
        if version is not None:
            stmt = stmt.where(expense_view.c.version == validate_version(version))
        stmt = stmt.order_by(expense_view.c.vendor_name, expense_view.c.month)

        with self._operation("fetch expense view"), self.engine.connect() as conn:
            return [ExpenseViewRow(**_row_to_dict(row)) for row in conn.execute(stmt).fetchall()]

    # Product tag operations

    def get_product_tags(self) -> dict[str, list[str]]:
        """Return {vendor_id: [product, ...]}."""
        stmt = select(vendor_product_tags.c.vendor_id, vendor_product_tags.c.product).order_by(
            vendor_product_tags.c.vendor_id, vendor_product_tags.c.id
        )
        tags: dict[str, list[str]] = {}
        with self._operation("fetch product tags"), self.engine.connect() as conn:
            for row in conn.execute(stmt).fetchall():
                tags.setdefault(row.vendor_id, []).append(row.product)
        return tags

    def save_product_tags(self, tags: Mapping[str, Iterable[str]]) -> int:
        """Replace all product tags. Tags for unknown vendors are dropped.

        Returns:
            Number of tag rows stored.
        """
        with self._operation("save product tags"), self.engine.begin() as conn:
            known = self._existing_ids(conn, tags.keys())
            conn.execute(delete(vendor_product_tags))
            rows = [
                {"vendor_id": vendor_id, "product": product}
                for vendor_id, products in tags.items()
                if vendor_id in known
                for product in dict.fromkeys(products)
            ]
            if rows:
                conn.execute(vendor_product_tags.insert(), rows)
            return len(rows)

    # Allocation operations

    def get_allocations(self) -> dict[str, dict[str, dict[str, float]]]:
        """Return {vendor_id: {product: {period: amount}}}."""
        stmt = select(
            product_allocations.c.vendor_id,
            product_allocations.c.product,
            product_allocations.c.period,
            product_allocations.c.amount,
        ).order_by(product_allocations.c.vendor_id, product_allocations.c.id)

        allocations: dict[str, dict[str, dict[str, float]]] = {}
        with self._operation("fetch allocations"), self.engine.connect() as conn:
            for row in conn.execute(stmt).fetchall():
                allocations.setdefault(row.vendor_id, {}).setdefault(row.product, {})[
                    row.period
                ] = row.amount
        return allocations

    def save_allocations(self, allocations: Mapping[str, Mapping[str, Mapping[str, float]]]) -> int:
        """Replace the allocations of every vendor present in ``allocations``.

        Returns:
            Number of allocation rows stored.
        """
        with self._operation("save allocations"), self.engine.begin() as conn:
            known = self._existing_ids(conn, allocations.keys())
            if not known:
                return 0
            conn.execute(
                delete(product_allocations).where(product_allocations.c.vendor_id.in_(known))
            )
            rows = [
                {"vendor_id": vendor_id, "product": product, "period": period, "amount": amount}
                for vendor_id, by_product in allocations.items()
                if vendor_id in known
                for product, by_period in by_product.items()
                for period, amount in by_period.items()
            ]
            if rows:
                conn.execute(product_allocations.insert(), rows)
            return len(rows)

    # Maintenance

    def clear_all(self) -> dict[str, int]:
        """Delete every vendor, figure, tag and allocation."""
        counts = {}
        with self._operation("clear data"), self.engine.begin() as conn:
            for name, table in (
                ("allocations", product_allocations),
                ("tags", vendor_product_tags),
                ("expense_rows", expense_data),
                ("vendors", vendors),
            ):
                counts[name] = conn.execute(delete(table)).rowcount
        return counts

    def count_vendors(self) -> int:
        with self._operation("count vendors"), self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(vendors)).scalar() or 0

    def count_expense_rows(self, version: str | None = None) -> int:
        stmt = select(func.count()).select_from(expense_data)
        if version is not None:
            stmt = stmt.where(expense_data.c.version == validate_version(version))
        with self._operation("count expense rows"), self.engine.connect() as conn:
            return conn.execute(stmt).scalar() or 0

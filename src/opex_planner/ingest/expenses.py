"""CSV ingester for monthly expense figures."""

from pathlib import Path

import pandas as pd

from .. import audit
from ..db.repository import ExpenseRow
from ..dimensions import VERSIONS
from ..logging import get_logger
from ..periods import month_labels
from .base import BaseIngester, IngestResult

logger = get_logger(__name__)

# Accepted CSV headers (matched case-insensitively)
EXPENSE_COLUMNS = {
    "Vendor": "vendor",
    "VendorCode": "vendor_code",
    "Month": "month",
    "Amount": "amount",
    "Version": "version",
}


def _cell(row: pd.Series, name: str) -> str:
    value = row.get(name)
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


class ExpenseCsvIngester(BaseIngester):
    """Ingester for CSV files of vendor x month figures.

    Each line names a vendor (``VendorCode`` is tried before ``Vendor``), a
    month label such as ``Jan'25`` and an amount. Lines may carry a
    ``Version``; otherwise the default version applies. Several lines for the
    same vendor, version and month are summed.
    """

    def _vendor_lookup(self) -> tuple[dict[str, str], dict[str, str]]:
        """Map upper-cased codes and case-folded names to vendor ids."""
        by_code: dict[str, str] = {}
        by_name: dict[str, str] = {}
        if self.db is None:
            return by_code, by_name
        for vendor in self.db.get_vendors():
            if vendor.vendor_code:
                by_code[vendor.vendor_code.upper()] = vendor.id
            by_name.setdefault(vendor.name.casefold(), vendor.id)
        return by_code, by_name

    def ingest(
        self,
        file_path: Path,
        default_version: str,
        original_filename: str | None = None,
    ) -> IngestResult:
        """Ingest an expense CSV file.

        Args:
            file_path: Path to the CSV file.
            default_version: Version for lines without a Version column value.
            original_filename: Original filename (for display, if file_path is a temp file).

        Returns:
            IngestResult with statistics and errors.
        """
        display_filename = original_filename or file_path.name
        result = IngestResult()

        if default_version not in VERSIONS:
            result.errors.append(f"Unknown version: {default_version}")
            return result

        try:
            df = pd.read_csv(file_path)
        except Exception as e:
            result.errors.append(f"Failed to read CSV: {e}")
            return result

        df.columns = df.columns.str.strip()
        column_map = {}
        for csv_col, internal_col in EXPENSE_COLUMNS.items():
            matches = [c for c in df.columns if c.lower() == csv_col.lower()]
            if matches:
                column_map[matches[0]] = internal_col
        df = df.rename(columns=column_map)

        missing = [c for c in ("month", "amount") if c not in df.columns]
        if "vendor" not in df.columns and "vendor_code" not in df.columns:
            missing.insert(0, "vendor")
        if missing:
            result.errors.append(f"Missing required columns: {', '.join(missing)}")
            return result

        valid_months = set(month_labels(self.config.planning.fiscal_year))
        by_code, by_name = self._vendor_lookup()

        figures: dict[tuple[str, str, str], float] = {}
        versions_seen: set[str] = set()

        for idx, row in df.iterrows():
            line_num = idx + 2  # Account for header and 0-indexing

            code = _cell(row, "vendor_code")
            name = _cell(row, "vendor")
            if not code and not name:
                result.errors.append(f"Line {line_num}: Missing vendor")
                continue

            month = _cell(row, "month")
            if month not in valid_months:
                result.errors.append(f"Line {line_num}: Invalid month '{month}'")
                continue

            version = _cell(row, "version") or default_version
            if version not in VERSIONS:
                result.errors.append(f"Line {line_num}: Unknown version '{version}'")
                continue

            try:
                amount = float(row.get("amount"))
            except (TypeError, ValueError):
                result.errors.append(f"Line {line_num}: Invalid amount")
                continue
            if pd.isna(amount):
                result.errors.append(f"Line {line_num}: Missing amount")
                continue

            if self.db is not None:
                vendor_id = by_code.get(code.upper()) if code else None
                if vendor_id is None and name:
                    vendor_id = by_name.get(name.casefold())
                if vendor_id is None:
                    result.errors.append(f"Line {line_num}: Unknown vendor '{code or name}'")
                    continue
            else:
                vendor_id = code or name

            key = (vendor_id, version, month)
            figures[key] = figures.get(key, 0.0) + amount
            versions_seen.add(version)
            result.total_rows += 1
            result.total_amount += amount

        result.versions = sorted(versions_seen)

        if self.db is not None and not self.dry_run and figures:
            rows = [
                ExpenseRow(vendor_id=vendor_id, version=version, month=month, amount=amount)
                for (vendor_id, version, month), amount in figures.items()
            ]
            batch = self.db.save_expense_data_batch(rows, self.config.planning.batch_size)
            result.saved_rows = batch.saved
            result.skipped_rows = len(batch.failed)

            for version in result.versions:
                audit.log_expenses_imported(
                    filename=display_filename,
                    version=version,
                    row_count=sum(1 for key in figures if key[1] == version),
                    total_amount=sum(v for key, v in figures.items() if key[1] == version),
                    error_count=len(result.errors),
                )

        logger.info(
            "expense_csv_ingested",
            filename=display_filename,
            rows=result.total_rows,
            errors=len(result.errors),
            dry_run=self.dry_run,
        )
        return result

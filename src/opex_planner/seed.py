"""Reset the database to the sample vendors with generated figures."""

import random
from dataclasses import dataclass

from . import audit
from .db import Database, ExpenseRow
from .dimensions import ACTUALS, BUDGET, LIVE_FORECAST
from .errors import PlannerError
from .logging import get_logger
from .periods import month_labels
from .planner.sample_data import SAMPLE_VENDORS

logger = get_logger(__name__)

SEED_BATCH_SIZE = 100

# Inclusive ranges, in whole currency units
ACTUALS_RANGE = (5_000, 44_999)
FORECAST_RANGE = (10_000, 59_999)
BUDGET_RANGE = (15_000, 59_999)


@dataclass
class SeedResult:
    success: bool
    message: str
    vendor_count: int = 0
    row_count: int = 0


def generate_figures(
    vendor_id: str,
    year: int,
    closed_months: int,
    rng: random.Random,
) -> list[ExpenseRow]:
    """Generate one year of figures in every version for a vendor.

    Actuals only exist for the closed months, the Live Forecast repeats them
    there and forecasts the rest, and the Budget covers the whole year.
    """
    months = month_labels(year)
    rows: list[ExpenseRow] = []

    actuals = {}
    for index, month in enumerate(months):
        amount = rng.randint(*ACTUALS_RANGE) if index < closed_months else 0
        actuals[month] = amount
        rows.append(ExpenseRow(vendor_id, ACTUALS, month, float(amount)))

    for index, month in enumerate(months):
        amount = actuals[month] if index < closed_months else rng.randint(*FORECAST_RANGE)
        rows.append(ExpenseRow(vendor_id, LIVE_FORECAST, month, float(amount)))

    for month in months:
        rows.append(ExpenseRow(vendor_id, BUDGET, month, float(rng.randint(*BUDGET_RANGE))))

    return rows


def seed_database(
    db: Database,
    year: int = 2025,
    rng: random.Random | None = None,
    closed_months: int = 3,
) -> SeedResult:
    """Clear all data and load the ten sample vendors with random figures.

    Never raises; failures are reported in the result.
    """
    rng = rng or random.Random()
    try:
        logger.info("seed_started", year=year)
        db.clear_all()

        vendor_ids = []
        for _, name, gl_account, cost_center, code in SAMPLE_VENDORS:
            vendor = db.save_vendor(
                {
                    "name": name,
                    "category": gl_account,
                    "vendor_code": code,
                    "gl_account": gl_account,
                    "cost_center": cost_center,
                }
            )
            vendor_ids.append(vendor.id)

        rows = [
            row
            for vendor_id in vendor_ids
            for row in generate_figures(vendor_id, year, closed_months, rng)
        ]
        result = db.save_expense_data_batch(rows, batch_size=SEED_BATCH_SIZE)
        logger.info("seed_rows_inserted", rows=result.saved, batches=result.batches)
    except PlannerError as e:
        logger.error("seed_failed", error=e.message)
        return SeedResult(success=False, message=f"Error seeding database: {e.message}")

    audit.log_database_seeded(vendor_count=len(vendor_ids), row_count=result.saved)
    return SeedResult(
        success=True,
        message="Database seeded successfully",
        vendor_count=len(vendor_ids),
        row_count=result.saved,
    )

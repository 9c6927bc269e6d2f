"""Built-in sample vendors and figures.

Used when the database cannot be read, so the planner always has something
to show.
"""

from ..dimensions import ACTUALS, BUDGET, LIVE_FORECAST
from ..periods import month_labels
from .models import PlannerVendor

# (id, name, gl_account, cost_center, vendor_code); category follows GL account
SAMPLE_VENDORS = [
    ("v1", "Salesforce", "Software", "Sales", "VND-SF01"),
    ("v2", "Accenture", "Professional Services", "Finance", "VND-AC01"),
    ("v3", "AWS", "Software", "Engineering", "VND-AWS1"),
    ("v4", "Slack", "Software", "Sales", "VND-SL01"),
    ("v5", "Deloitte", "Professional Services", "Finance", "VND-DL01"),
    ("v6", "Zoom", "Software", "Engineering", "VND-ZM01"),
    ("v7", "Adobe", "Software", "Marketing", "VND-AD01"),
    ("v8", "WeWork", "Facilities", "Finance", "VND-WW01"),
    ("v9", "Delta Airlines", "Travel", "Sales", "VND-DA01"),
    ("v10", "Microsoft", "Software", "Engineering", "VND-MS01"),
]

_ACTUALS = {
    "v1": [9800, 9900, 10100],
    "v2": [24500, 0, 25200],
    "v3": [44800, 45100, 45300],
    "v4": [4900, 5100, 5050],
    "v5": [0, 39800, 0],
    "v6": [2950, 2950, 3100],
    "v7": [7900, 7950, 8100],
    "v8": [19800, 19800, 20100],
    "v9": [14800, 4900, 15200],
    "v10": [29800, 29900, 30200],
}

# Apr..Dec; Jan..Mar of the forecast repeat the actuals
_FORECAST_TAIL = {
    "v1": [10000, 10000, 10000, 12000, 12000, 12000, 12000, 12000, 12000],
    "v2": [0, 25000, 0, 30000, 0, 30000, 0, 30000, 0],
    "v3": [50000, 50000, 50000, 55000, 55000, 55000, 60000, 60000, 60000],
    "v4": [5000] * 9,
    "v5": [40000, 0, 40000, 0, 45000, 0, 45000, 0, 45000],
    "v6": [3000, 3000, 3000, 3500, 3500, 3500, 3500, 3500, 3500],
    "v7": [8000, 8000, 8000, 9000, 9000, 9000, 9000, 9000, 9000],
    "v8": [20000, 20000, 20000, 22000, 22000, 22000, 22000, 22000, 22000],
    "v9": [5000, 15000, 5000, 18000, 6000, 18000, 6000, 18000, 6000],
    "v10": [30000, 30000, 30000, 35000, 35000, 35000, 35000, 35000, 35000],
}

_BUDGET = {
    "v1": [10000] * 6 + [12000] * 6,
    "v2": [25000, 0, 25000, 0, 25000, 0, 30000, 0, 30000, 0, 30000, 0],
    "v3": [45000] * 3 + [50000] * 3 + [55000] * 3 + [60000] * 3,
    "v4": [5000] * 12,
    "v5": [0, 40000, 0, 40000, 0, 40000, 0, 45000, 0, 45000, 0, 45000],
    "v6": [3000] * 6 + [3500] * 6,
    "v7": [8000] * 6 + [9000] * 6,
    "v8": [20000] * 6 + [22000] * 6,
    "v9": [15000, 5000, 15000, 5000, 15000, 5000, 18000, 6000, 18000, 6000, 18000, 6000],
    "v10": [30000] * 6 + [35000] * 6,
}


def sample_registry() -> dict[str, PlannerVendor]:
    """Return the sample vendor registry keyed by vendor id."""
    return {
        vendor_id: PlannerVendor(
            id=vendor_id,
            name=name,
            category=gl_account,
            vendor_code=code,
            gl_account=gl_account,
            cost_center=cost_center,
        )
        for vendor_id, name, gl_account, cost_center, code in SAMPLE_VENDORS
    }


def sample_expenses(year: int) -> dict[str, dict[str, dict[str, float]]]:
    """Return {version: {vendor_id: {month: amount}}} for the sample vendors."""
    months = month_labels(year)
    series = {
        ACTUALS: {vid: amounts + [0] * 9 for vid, amounts in _ACTUALS.items()},
        LIVE_FORECAST: {vid: _ACTUALS[vid] + tail for vid, tail in _FORECAST_TAIL.items()},
        BUDGET: _BUDGET,
    }
    return {
        version: {
            vendor_id: {month: float(amount) for month, amount in zip(months, amounts)}
            for vendor_id, amounts in by_vendor.items()
        }
        for version, by_vendor in series.items()
    }

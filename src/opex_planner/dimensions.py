"""Planning dimensions: versions, GL accounts, cost centers and products."""

ALL = "All"

ACTUALS = "Actuals"
LIVE_FORECAST = "Live Forecast"
BUDGET = "Budget"

VERSIONS = (ACTUALS, LIVE_FORECAST, BUDGET)

GL_ACCOUNTS = (
    "Compensation",
    "Professional Services",
    "Travel",
    "Software",
    "Marketing",
    "Facilities",
    "Other",
)

COST_CENTERS = ("Finance", "HR", "Engineering", "Marketing", "Sales")

PRODUCTS = ("Trading", "Card", "Commerce", "Custody", "Markets")


def validate_version(version: str) -> str:
    """Return the version unchanged, or raise ValueError if it is unknown."""
    if version not in VERSIONS:
        raise ValueError(f"Unknown version: {version!r}")
    return version

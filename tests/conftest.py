"""Pytest configuration and fixtures."""

import logging
import os
import tempfile
from pathlib import Path

import pytest
import structlog

from opex_planner import audit
from opex_planner.config import Config, DatabaseConfig, LoggingConfig
from opex_planner.db import Database
from opex_planner.planner import ExpenseDataService, ExpensePlanner


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging set up by the CLI or the web app between tests."""
    yield
    structlog.reset_defaults()
    audit_logger = logging.getLogger(audit.AUDIT_LOGGER_NAME)
    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()
    audit._logger = None
    audit.configure(enabled=True)


@pytest.fixture
def temp_db():
    """Create a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield Path(f.name)
    os.unlink(f.name)


@pytest.fixture
def db(temp_db):
    """Create initialized database."""
    database = Database(temp_db)
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def config(temp_db) -> Config:
    """Default config pointing at the temporary database."""
    return Config(database=DatabaseConfig(path=temp_db), logging=LoggingConfig(enabled=False))


@pytest.fixture
def service(db) -> ExpenseDataService:
    return ExpenseDataService(db, batch_size=10)


@pytest.fixture
def planner(config) -> ExpensePlanner:
    """Empty planner for fiscal year 2025."""
    return ExpensePlanner(config.planning)


@pytest.fixture
def sample_planner(config) -> ExpensePlanner:
    """Planner holding the built-in sample vendors and figures."""
    planner = ExpensePlanner(config.planning)
    planner.initialize_sample_data()
    return planner


@pytest.fixture
def vendor_fields() -> dict:
    return {
        "name": "Acme Analytics",
        "category": "Software",
        "gl_account": "Software",
        "cost_center": "Engineering",
    }


@pytest.fixture
def sample_expense_csv(tmp_path: Path) -> Path:
    """Create a sample expense CSV file for testing."""
    csv_content = """VendorCode,Vendor,Month,Amount,Version
VND-SF01,,Jan'25,1000.50,
,AWS,Jan'25,2000,Budget
VND-SF01,,Feb'25,1500,
VND-SF01,,Feb'25,500,
"""
    csv_file = tmp_path / "expenses.csv"
    csv_file.write_text(csv_content)
    return csv_file


@pytest.fixture
def config_file(tmp_path: Path, temp_db: Path) -> Path:
    """Config file for the web app pointing at the temporary database."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        f"""
database:
  path: {temp_db}
logging:
  enabled: false
web:
  secret_key: test-secret
"""
    )
    return config_file

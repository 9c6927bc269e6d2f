"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from opex_planner.config import (
    Config,
    DatabaseConfig,
    LoggingConfig,
    PlanningConfig,
    WebConfig,
    ensure_directories,
    expand_env_vars,
    load_config,
)
from opex_planner.dimensions import COST_CENTERS, GL_ACCOUNTS, PRODUCTS


class TestExpandEnvVars:
    """Tests for expand_env_vars function."""

    def test_single_variable(self, monkeypatch):
        """Expand single environment variable."""
        monkeypatch.setenv("TEST_VAR", "test_value")
        assert expand_env_vars("${TEST_VAR}") == "test_value"

    def test_multiple_variables(self, monkeypatch):
        """Expand multiple variables in one string."""
        monkeypatch.setenv("DB_USER", "planner")
        monkeypatch.setenv("DB_HOST", "localhost")
        assert expand_env_vars("${DB_USER}@${DB_HOST}") == "planner@localhost"

    def test_missing_variable(self, monkeypatch):
        """Missing variable expands to empty string."""
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)
        assert expand_env_vars("${NONEXISTENT_VAR}") == ""

    def test_no_variables(self):
        """String without variables unchanged."""
        assert expand_env_vars("plain text") == "plain text"


class TestDatabaseConfig:
    """Tests for DatabaseConfig model."""

    def test_default_path(self):
        """Default database path is instance/opex.db."""
        config = DatabaseConfig()
        assert config.path == Path("./instance/opex.db")

    def test_plain_string_becomes_path(self):
        config = DatabaseConfig(path="/data/opex.db")
        assert config.path == Path("/data/opex.db")

    def test_url_stays_string(self, monkeypatch):
        """Connection URLs are kept as strings with variables expanded."""
        monkeypatch.setenv("DB_PASSWORD", "s3cret")
        config = DatabaseConfig(path="postgresql://planner:${DB_PASSWORD}@db/opex")
        assert config.path == "postgresql://planner:s3cret@db/opex"


class TestLoggingConfig:
    """Tests for LoggingConfig model."""

    def test_defaults(self):
        config = LoggingConfig()
        assert config.enabled is True
        assert config.level == "INFO"
        assert config.format == "splunk"
        assert config.file is None

    def test_invalid_format(self):
        """Only splunk and json formats are accepted."""
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")


class TestWebConfig:
    """Tests for WebConfig model."""

    def test_defaults(self):
        config = WebConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8000
        assert config.secret_key == ""

    def test_secret_key_env_expansion(self, monkeypatch):
        monkeypatch.setenv("OPEX_SECRET", "abc123")
        config = WebConfig(secret_key="${OPEX_SECRET}")
        assert config.secret_key == "abc123"


class TestPlanningConfig:
    """Tests for PlanningConfig model."""

    def test_defaults(self):
        config = PlanningConfig()
        assert config.fiscal_year == 2025
        assert config.closed_months == 3
        assert config.batch_size == 50
        assert config.gl_accounts == list(GL_ACCOUNTS)
        assert config.cost_centers == list(COST_CENTERS)
        assert config.products == list(PRODUCTS)

    def test_rejects_all_cost_center(self):
        """'All' is reserved for filters."""
        with pytest.raises(ValidationError):
            PlanningConfig(cost_centers=["Finance", "All"])

    def test_rejects_all_product(self):
        with pytest.raises(ValidationError):
            PlanningConfig(products=["All"])

    def test_closed_months_bounds(self):
        with pytest.raises(ValidationError):
            PlanningConfig(closed_months=13)

    def test_batch_size_positive(self):
        with pytest.raises(ValidationError):
            PlanningConfig(batch_size=0)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_nonexistent_returns_default(self, tmp_path, monkeypatch):
        """Missing config file returns default config."""
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert isinstance(config, Config)

    def test_load_explicit_path(self, tmp_path):
        """Load from explicit path."""
        config_content = """
database:
  path: /custom/opex.db
logging:
  level: DEBUG
planning:
  fiscal_year: 2026
  closed_months: 6
"""
        config_file = tmp_path / "custom-config.yaml"
        config_file.write_text(config_content)

        config = load_config(config_file)
        assert config.database.path == Path("/custom/opex.db")
        assert config.logging.level == "DEBUG"
        assert config.planning.fiscal_year == 2026
        assert config.planning.closed_months == 6

    def test_load_empty_file(self, tmp_path):
        """Empty config file returns default config."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        config = load_config(config_file)
        assert isinstance(config, Config)

    def test_load_partial_config(self, tmp_path):
        """Partial config merges with defaults."""
        config_file = tmp_path / "partial.yaml"
        config_file.write_text("logging:\n  level: ERROR\n")

        config = load_config(config_file)
        assert config.logging.level == "ERROR"
        assert config.database.path == Path("./instance/opex.db")
        assert config.planning.products == list(PRODUCTS)

    def test_load_custom_dimensions(self, tmp_path):
        config_content = """
planning:
  gl_accounts: [Software, Travel]
  cost_centers: [Engineering]
  products: [Widgets]
"""
        config_file = tmp_path / "dims.yaml"
        config_file.write_text(config_content)

        config = load_config(config_file)
        assert config.planning.gl_accounts == ["Software", "Travel"]
        assert config.planning.cost_centers == ["Engineering"]
        assert config.planning.products == ["Widgets"]


class TestEnsureDirectories:
    """Tests for ensure_directories function."""

    def test_creates_database_dir(self, tmp_path):
        config = Config(database=DatabaseConfig(path=tmp_path / "instance" / "opex.db"))

        ensure_directories(config)

        assert (tmp_path / "instance").is_dir()

    def test_creates_log_dir(self, tmp_path):
        config = Config(
            database=DatabaseConfig(path=tmp_path / "opex.db"),
            logging=LoggingConfig(file=tmp_path / "logs" / "audit.log"),
        )

        ensure_directories(config)

        assert (tmp_path / "logs").is_dir()

    def test_url_database_is_ignored(self, tmp_path):
        """Connection URLs have no directory to create."""
        config = Config(database=DatabaseConfig(path="postgresql://db/opex"))
        ensure_directories(config)

"""
Unit tests for the driver registry (drivers.yml loading and validation).
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from structured_sql.config.drivers import (
    DriverConfig,
    DriverRegistry,
    DriverRegistryError,
    load_driver_registry,
)
from structured_sql.exceptions import InvalidDriverError


def write_yaml(tmp_path: Path, content: str) -> Path:
    """Write a drivers.yml into tmp_path."""
    path = tmp_path / "drivers.yml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.unit
class TestPackagedRegistry:
    """Tests for the drivers.yml shipped with the package."""

    def test_registered_drivers(self, registry):
        """mysql, pgsql and sqlite are registered."""
        assert set(registry.names) == {"mysql", "pgsql", "sqlite"}

    @pytest.mark.parametrize(
        "name, delimiter, paramstyle, module",
        [
            ("mysql", "`", "format", "pymysql"),
            ("pgsql", '"', "format", "psycopg2"),
            ("sqlite", '"', "qmark", "sqlite3"),
        ],
    )
    def test_driver_entries(self, registry, name, delimiter, paramstyle, module):
        """Each packaged driver entry matches drivers.yml."""
        driver = registry.get(name)
        assert driver.name == name
        assert driver.quote_delimiter == delimiter
        assert driver.paramstyle == paramstyle
        assert driver.module == module

    def test_mysql_begin_statement(self, registry):
        """MySQL starts transactions with START TRANSACTION."""
        assert registry.get("mysql").begin_statement == "START TRANSACTION"

    @pytest.mark.parametrize("name", ["oracle", "", None, "MYSQL"])
    def test_unknown_driver(self, registry, name):
        """Lookups are exact and reject unknown names."""
        with pytest.raises(InvalidDriverError):
            registry.get(name)

    def test_contains(self, registry):
        """Membership tests use driver names."""
        assert "pgsql" in registry
        assert "oracle" not in registry

    def test_merged_params_order(self, registry):
        """Given params win over driver and base defaults."""
        merged = registry.merged_params("mysql", {"driver": "mysql", "port": 3307})
        assert merged["port"] == 3307
        assert merged["host"] == "localhost"
        assert merged["charset"] == "utf8mb4"
        assert merged["dsn"] is None

    def test_driver_defaults_override_base_defaults(self, registry):
        """Driver defaults win over base defaults."""
        assert registry.get("pgsql").defaults["charset"] == "UTF8"
        assert registry.merged_params("pgsql", {})["charset"] == "UTF8"

    def test_driver_config_is_immutable(self, registry):
        """Driver entries and their mappings cannot be changed."""
        driver = registry.get("sqlite")
        with pytest.raises(ValidationError):
            driver.paramstyle = "format"
        with pytest.raises(TypeError):
            driver.connect_args["host"] = "host"


@pytest.mark.unit
class TestLoadDriverRegistry:
    """Tests for load_driver_registry function."""

    def test_load_custom_file(self, tmp_path):
        """A custom file is loaded with its base defaults."""
        path = write_yaml(
            tmp_path,
            """
defaults:
  charset: utf8
drivers:
  lite:
    module: sqlite3
    quote_delimiter: '"'
    paramstyle: qmark
    autocommit: isolation_level
    connect_args:
      dbname: database
""",
        )
        registry = load_driver_registry(path)

        assert registry.names == ("lite",)
        assert registry.base_defaults == {"charset": "utf8"}
        assert registry.get("lite").begin_statement == "BEGIN"

    def test_missing_file(self, tmp_path):
        """A missing file raises DriverRegistryError."""
        with pytest.raises(DriverRegistryError, match="not found"):
            load_driver_registry(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path):
        """Unparseable YAML raises DriverRegistryError."""
        path = write_yaml(tmp_path, "drivers: [unclosed")
        with pytest.raises(DriverRegistryError, match="Invalid YAML"):
            load_driver_registry(path)

    def test_invalid_delimiter(self, tmp_path):
        """Delimiters other than " and ` are rejected."""
        path = write_yaml(
            tmp_path,
            """
drivers:
  odd:
    module: oddb
    quote_delimiter: "["
    paramstyle: qmark
""",
        )
        with pytest.raises(DriverRegistryError, match="Invalid driver registry"):
            load_driver_registry(path)

    def test_empty_drivers(self, tmp_path):
        """A registry needs at least one driver."""
        path = write_yaml(tmp_path, "drivers: {}\n")
        with pytest.raises(DriverRegistryError):
            load_driver_registry(path)


@pytest.mark.unit
class TestConstraintViolation:
    """Tests for DriverConfig.is_constraint_violation."""

    class Error(Exception):
        pass

    class IntegrityError(Error):
        pass

    def test_integrity_error_detected(self):
        """IntegrityError instances are constraint violations."""
        driver = DriverConfig(name="x", module="x", quote_delimiter='"', paramstyle="qmark")
        module = type("Module", (), {"Error": self.Error, "IntegrityError": self.IntegrityError})

        assert driver.is_constraint_violation(self.IntegrityError("dup"), module) is True
        assert driver.is_constraint_violation(self.Error("syntax"), module) is False

    def test_module_without_integrity_error(self):
        """Modules without IntegrityError never report one."""
        driver = DriverConfig(name="x", module="x", quote_delimiter='"', paramstyle="qmark")
        module = type("Module", (), {"Error": self.Error})

        assert driver.is_constraint_violation(self.Error("dup"), module) is False

    def test_registry_from_models(self):
        """A registry can be built from DriverConfig models."""
        driver = DriverConfig(name="x", module="x", quote_delimiter="`", paramstyle="format")
        registry = DriverRegistry({"x": driver})
        assert registry.get("x") is driver

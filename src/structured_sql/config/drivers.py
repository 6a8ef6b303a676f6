"""
Driver registry for structured-sql.

Loads the packaged drivers.yml, validates it with Pydantic and exposes it as an
immutable registry. Each entry describes how to connect through a DB-API 2.0
module and which identifier delimiter and placeholder style it uses.

Usage:
    >>> from structured_sql.config.drivers import get_driver_registry
    >>> registry = get_driver_registry()
    >>> registry.get("mysql").quote_delimiter
    '`'
"""

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from structured_sql.exceptions import InvalidDriverError

logger = structlog.get_logger(__name__)

DRIVERS_FILE = Path(__file__).resolve().parent / "drivers.yml"

ParamValue = Union[str, int, None]


class DriverRegistryError(Exception):
    """Raised when drivers.yml cannot be loaded or fails validation."""


class DriverConfig(BaseModel):
    """Schema for a single driver entry."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Registry key")
    module: str = Field(..., description="Importable DB-API 2.0 module name")
    quote_delimiter: Literal["`", '"'] = Field(
        ..., description="Identifier quoting character"
    )
    paramstyle: Literal["qmark", "format"] = Field(
        ..., description="Placeholder style expected by the module"
    )
    begin_statement: str = Field("BEGIN", description="Flat transaction start")
    autocommit: Literal["method", "attribute", "isolation_level"] = Field(
        "attribute", description="How the connection is switched to autocommit"
    )
    dsn_arg: Optional[str] = Field(
        None, description="connect() keyword receiving a full connection string"
    )
    defaults: Mapping[str, ParamValue] = Field(default_factory=dict)
    connect_args: Mapping[str, str] = Field(default_factory=dict)

    @field_validator("defaults", "connect_args", mode="after")
    @classmethod
    def freeze_mapping(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    def is_constraint_violation(self, error: BaseException, module: Any) -> bool:
        """
        Check whether a driver error is an integrity constraint violation.

        DB-API 2.0 requires every module to expose IntegrityError, which
        covers unique and primary-key violations on all registered backends.
        """
        integrity_error = getattr(module, "IntegrityError", None)
        return integrity_error is not None and isinstance(error, integrity_error)


class DriverRegistryFile(BaseModel):
    """Schema for the complete drivers.yml structure."""

    defaults: Dict[str, ParamValue] = Field(default_factory=dict)
    drivers: Dict[str, Dict[str, Any]] = Field(..., min_length=1)


class DriverRegistry:
    """Immutable mapping of driver identifiers to DriverConfig."""

    def __init__(
        self,
        drivers: Mapping[str, DriverConfig],
        base_defaults: Optional[Mapping[str, ParamValue]] = None,
    ):
        self._drivers = MappingProxyType(dict(drivers))
        self._base_defaults = MappingProxyType(dict(base_defaults or {}))

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._drivers)

    @property
    def base_defaults(self) -> Mapping[str, ParamValue]:
        return self._base_defaults

    def __contains__(self, name: object) -> bool:
        return name in self._drivers

    def get(self, name: Optional[str]) -> DriverConfig:
        """
        Look up a driver by identifier.

        Raises:
            InvalidDriverError: If the identifier is not registered
        """
        if not isinstance(name, str) or name not in self._drivers:
            raise InvalidDriverError(
                f"Invalid db driver specified: {name!r} "
                f"(expected one of {', '.join(self._drivers)})"
            )
        return self._drivers[name]

    def merged_params(
        self, name: str, params: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Merge base defaults, driver defaults and caller params, in that order."""
        driver = self.get(name)
        merged: Dict[str, Any] = dict(self._base_defaults)
        merged.update(driver.defaults)
        merged.update(params)
        return merged


def load_driver_registry(path: Path = DRIVERS_FILE) -> DriverRegistry:
    """
    Load and validate a drivers YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        DriverRegistry built from the file

    Raises:
        DriverRegistryError: If the file is missing, unparsable or invalid
    """
    if not path.exists():
        raise DriverRegistryError(f"Driver registry file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error("driver_registry.yaml_parse_error", file_path=str(path), error=str(e))
        raise DriverRegistryError(f"Invalid YAML in {path}: {e}") from e

    try:
        raw = DriverRegistryFile.model_validate(content or {})
        drivers = {
            name: DriverConfig.model_validate({"name": name, **entry})
            for name, entry in raw.drivers.items()
        }
    except ValidationError as e:
        logger.error("driver_registry.validation_error", file_path=str(path), error=str(e))
        raise DriverRegistryError(f"Invalid driver registry in {path}: {e}") from e

    logger.debug("driver_registry.loaded", file_path=str(path), drivers=list(drivers))
    return DriverRegistry(drivers, raw.defaults)


@lru_cache()
def get_driver_registry() -> DriverRegistry:
    """Get the cached registry built from the packaged drivers.yml."""
    return load_driver_registry()

"""Configuration management for structured-sql.

Usage:
    >>> from structured_sql.config import get_settings, get_driver_registry
    >>> settings = get_settings()
    >>> get_driver_registry().get(settings.driver).quote_delimiter
"""

from structured_sql.config.drivers import (
    DriverConfig,
    DriverRegistry,
    DriverRegistryError,
    get_driver_registry,
    load_driver_registry,
)
from structured_sql.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "DriverConfig",
    "DriverRegistry",
    "DriverRegistryError",
    "get_driver_registry",
    "load_driver_registry",
]

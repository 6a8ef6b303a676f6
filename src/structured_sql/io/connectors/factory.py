"""
Gateway factory.

Creates ConnectionGateway instances either by opening a new connection from
parameters (merged with the driver registry defaults) or by wrapping an
existing DB-API connection.
"""

import importlib
from typing import Any, Dict, Mapping, Optional

from structured_sql.config.drivers import DriverConfig, DriverRegistry, get_driver_registry
from structured_sql.exceptions import InvalidArgumentError, InvalidDriverError
from structured_sql.io.connectors.gateway import DbApiGateway
from structured_sql.utils.logging import get_logger, sanitize_for_logging

logger = get_logger(__name__)


def build_connect_kwargs(
    driver: DriverConfig, params: Mapping[str, Any], options: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """
    Translate merged connection params into driver connect() keyword arguments.

    A non-empty ``dsn`` replaces the individual parameters. Options are passed
    through verbatim and win over params.

    Raises:
        InvalidArgumentError: If a dsn is given for a driver without dsn support

    Examples:
        >>> registry = get_driver_registry()
        >>> build_connect_kwargs(registry.get("sqlite"), {"dbname": "app.db"})
        {'database': 'app.db'}
    """
    kwargs: Dict[str, Any] = {}
    dsn = params.get("dsn")
    if dsn:
        if driver.dsn_arg is None:
            raise InvalidArgumentError(f"Driver {driver.name!r} does not accept a dsn")
        kwargs[driver.dsn_arg] = dsn
    else:
        for name, arg in driver.connect_args.items():
            value = params.get(name)
            if value is not None:
                kwargs[arg] = value

    # a password given next to a dsn is passed separately
    if dsn and params.get("password") is not None and "password" in driver.connect_args:
        kwargs[driver.connect_args["password"]] = params["password"]

    kwargs.update(options or {})
    return kwargs


def connect(
    params: Mapping[str, Any],
    options: Optional[Mapping[str, Any]] = None,
    registry: Optional[DriverRegistry] = None,
) -> DbApiGateway:
    """
    Open a database connection from parameters.

    Args:
        params: Connection parameters; ``driver`` is required, other keys
            (dsn, dbname, host, port, user, password, charset) default to the
            registry values for that driver
        options: Extra keyword arguments for the driver's connect()
        registry: Driver registry; the packaged one when omitted

    Returns:
        DbApiGateway wrapping the new connection

    Raises:
        InvalidDriverError: If the driver is missing or unknown
    """
    registry = registry or get_driver_registry()
    driver = registry.get(params.get("driver"))
    merged = registry.merged_params(driver.name, params)

    module = importlib.import_module(driver.module)
    kwargs = build_connect_kwargs(driver, merged, options)
    connection = module.connect(**kwargs)

    logger.info(
        "db.connected", driver=driver.name, connect_args=sanitize_for_logging(kwargs)
    )
    return DbApiGateway(connection, driver, module)


def detect_driver(connection: Any, registry: Optional[DriverRegistry] = None) -> DriverConfig:
    """
    Find the registry entry whose module created a DB-API connection.

    Raises:
        InvalidDriverError: If no registered driver matches the connection
    """
    registry = registry or get_driver_registry()
    root_module = type(connection).__module__.split(".")[0]
    for name in registry.names:
        driver = registry.get(name)
        if driver.module.split(".")[0] == root_module:
            return driver
    raise InvalidDriverError(
        f"Cannot determine driver for connection of type {type(connection).__name__}"
    )


def wrap_connection(
    connection: Any,
    driver: Optional[str] = None,
    registry: Optional[DriverRegistry] = None,
) -> DbApiGateway:
    """Wrap an existing DB-API connection, detecting its driver unless given."""
    registry = registry or get_driver_registry()
    config = registry.get(driver) if driver is not None else detect_driver(connection, registry)
    return DbApiGateway(connection, config)

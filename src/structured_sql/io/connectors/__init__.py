"""Database connectors: the connection gateway and its factory."""

from .factory import build_connect_kwargs, connect, detect_driver, wrap_connection
from .gateway import (
    ConnectionGateway,
    DbApiGateway,
    ErrorInfo,
    PreparedStatement,
    Result,
    translate_placeholders,
)

__all__ = [
    "ConnectionGateway",
    "DbApiGateway",
    "ErrorInfo",
    "PreparedStatement",
    "Result",
    "build_connect_kwargs",
    "connect",
    "detect_driver",
    "translate_placeholders",
    "wrap_connection",
]

"""
structured-sql: compose parameterized SQL from structured data.

Usage:
    >>> from structured_sql import Db
    >>> db = Db({"driver": "sqlite"})
    >>> db.compile_filter([{"id": 1}, "or", {"created >": "2020-01-01"}])
    ('("id" = ? OR "created" > ?)', [1, '2020-01-01'])
"""

from structured_sql.db import Db
from structured_sql.exceptions import (
    EmptyFilterError,
    EmptyValuesError,
    ExecutionFailure,
    InvalidArgumentError,
    InvalidDriverError,
    InvalidFilterError,
    InvalidIdentifierError,
    InvalidJoinError,
    InvalidTableError,
    StructuredSqlError,
    TransactionStateError,
)
from structured_sql.infrastructure.sql import AND, OR, Column, Group, Predicate, where
from structured_sql.io.connectors import PreparedStatement, Result

__version__ = "0.1.0"

__all__ = [
    "Db",
    "PreparedStatement",
    "Result",
    "AND",
    "OR",
    "Column",
    "Group",
    "Predicate",
    "where",
    "StructuredSqlError",
    "InvalidArgumentError",
    "InvalidDriverError",
    "EmptyValuesError",
    "EmptyFilterError",
    "InvalidFilterError",
    "InvalidIdentifierError",
    "InvalidJoinError",
    "InvalidTableError",
    "TransactionStateError",
    "ExecutionFailure",
]

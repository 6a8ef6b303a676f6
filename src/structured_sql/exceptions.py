"""
Exception taxonomy for structured-sql.

Compiler-level errors derive from InvalidArgumentError and are raised before
any statement reaches the driver. ExecutionFailure wraps errors raised by the
underlying DB-API driver.
"""

from typing import Any, Dict, Optional


class StructuredSqlError(Exception):
    """Base class for all structured-sql errors."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to structured dict for logging."""
        return {
            "error_type": type(self).__name__,
            "message": str(self),
        }


class InvalidArgumentError(StructuredSqlError, ValueError):
    """Raised when a public operation receives an argument of the wrong shape."""


class InvalidDriverError(InvalidArgumentError):
    """Raised when a driver identifier is not present in the driver registry."""


class EmptyValuesError(InvalidArgumentError):
    """Raised when INSERT/UPDATE receive no values."""


class EmptyFilterError(InvalidArgumentError):
    """Raised when UPDATE/DELETE receive no filters."""


class InvalidFilterError(InvalidArgumentError):
    """Raised when a filter specification is malformed."""


class InvalidIdentifierError(InvalidArgumentError):
    """Raised when a table or column name fails the quoting rules."""


class InvalidJoinError(InvalidArgumentError):
    """Raised when a table specification contains an unknown join keyword."""


class InvalidTableError(InvalidArgumentError):
    """Raised when a table specification entry is malformed."""


class TransactionStateError(StructuredSqlError):
    """Raised on commit/rollback without a matching begin."""


class ExecutionFailure(StructuredSqlError):
    """Structured error for statements rejected by the database driver."""

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        sql: Optional[str] = None,
        sqlstate: Optional[str] = None,
        code: Optional[Any] = None,
        constraint_violation: bool = False,
    ):
        self.original_error = original_error
        self.sql = sql
        self.sqlstate = sqlstate
        self.code = code
        self.constraint_violation = constraint_violation
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "sql": self.sql,
                "sqlstate": self.sqlstate,
                "code": self.code,
                "constraint_violation": self.constraint_violation,
                "original_error_type": type(self.original_error).__name__
                if self.original_error is not None
                else None,
            }
        )
        return data

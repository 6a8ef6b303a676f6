"""SQL operation builders: statements and nested transactions."""

from .statements import StatementBuilder, normalize_rows
from .transactions import TransactionDepthTracker

__all__ = ["StatementBuilder", "TransactionDepthTracker", "normalize_rows"]

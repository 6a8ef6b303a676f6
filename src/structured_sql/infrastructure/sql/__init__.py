"""
SQL module for structured SQL generation.

This module provides reusable utilities for composing SQL statements from
structured data with proper identifier quoting and positional placeholders.
"""

from .core import (
    AND,
    OR,
    Column,
    FilterCompiler,
    Group,
    IdentifierQuoter,
    Predicate,
    TableCompiler,
    quote_identifier,
    where,
)
from .operations import StatementBuilder, TransactionDepthTracker

__all__ = [
    "quote_identifier",
    "IdentifierQuoter",
    "FilterCompiler",
    "TableCompiler",
    "StatementBuilder",
    "TransactionDepthTracker",
    "AND",
    "OR",
    "Column",
    "Group",
    "Predicate",
    "where",
]

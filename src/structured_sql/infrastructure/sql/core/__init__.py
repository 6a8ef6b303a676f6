"""Core SQL utilities package."""

from .compiler import FilterCompiler, TableCompiler, placeholders
from .filters import AND, OR, BooleanOp, Column, Group, Predicate, parse_filters, where
from .identifier import IdentifierQuoter, quote_identifier

__all__ = [
    "quote_identifier",
    "IdentifierQuoter",
    "FilterCompiler",
    "TableCompiler",
    "placeholders",
    "AND",
    "OR",
    "BooleanOp",
    "Column",
    "Group",
    "Predicate",
    "parse_filters",
    "where",
]

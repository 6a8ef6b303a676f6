"""
Filter and table compilers.

FilterCompiler turns a filter specification into a parenthesized boolean
expression and appends the bound values to a parameter list, keeping the
placeholder order and parameter order identical. TableCompiler turns a table
specification into a FROM clause, compiling join predicates with the
FilterCompiler.
"""

import re
from typing import Any, List, Mapping, Optional, Sequence, Union

from structured_sql.exceptions import InvalidFilterError, InvalidJoinError, InvalidTableError
from structured_sql.infrastructure.sql.core.filters import (
    FILTER_OPERATORS,
    BooleanOp,
    Column,
    FilterLiteral,
    Group,
    Predicate,
    is_scalar,
    parse_filters,
    split_column_operator,
)
from structured_sql.infrastructure.sql.core.identifier import IdentifierQuoter

PLACEHOLDER = "?"

DEFAULT_JOIN = "INNER JOIN"
CROSS_JOIN = "CROSS JOIN"
JOIN_TYPES = frozenset(
    {
        "JOIN",
        "INNER JOIN",
        "LEFT JOIN",
        "LEFT OUTER JOIN",
        "RIGHT JOIN",
        "RIGHT OUTER JOIN",
        "FULL JOIN",
        "FULL OUTER JOIN",
        CROSS_JOIN,
    }
)

_WHITESPACE = re.compile(r"\s+")

TableLiteral = Union[str, Sequence[Any]]


def placeholders(count: int) -> str:
    """
    Build a comma separated placeholder list.

    Examples:
        >>> placeholders(3)
        '?,?,?'
    """
    return ",".join([PLACEHOLDER] * count)


class FilterCompiler:
    """
    Compiles filter specifications into WHERE/ON expressions.

    Example:
        >>> params = []
        >>> FilterCompiler(IdentifierQuoter()).compile(
        ...     [{"id": 1}, "or", {"created >": "2020-01-01"}], params
        ... )
        '("id" = ? OR "created" > ?)'
        >>> params
        [1, '2020-01-01']
    """

    def __init__(self, quoter: IdentifierQuoter):
        self.quoter = quoter

    def compile(self, filters: FilterLiteral, params: Optional[List[Any]] = None) -> str:
        """
        Compile filters, appending bound values to params in placeholder order.

        Args:
            filters: Structured filter literal or filter entries
            params: Parameter sink; a new list is used when omitted

        Returns:
            Parenthesized filter expression

        Raises:
            InvalidFilterError: If the filter is empty or malformed
        """
        if params is None:
            params = []
        entries = parse_filters(filters)
        if not entries:
            raise InvalidFilterError("Filter must not be empty.")
        return self._compile_entries(entries, params)

    def _compile_entries(self, entries: Sequence[Any], params: List[Any]) -> str:
        parts: List[str] = []
        conjunction: Optional[str] = None

        for entry in entries:
            if isinstance(entry, BooleanOp):
                if conjunction is None:
                    raise InvalidFilterError("Filter must not start with operator.")
                conjunction = entry.operator
                continue

            if conjunction is not None:
                parts.append(f" {conjunction} ")

            if isinstance(entry, Predicate):
                parts.append(self._compile_predicate(entry, params))
            elif isinstance(entry, Group):
                if not entry.entries:
                    raise InvalidFilterError("Nested filter must not be empty.")
                parts.append(self._compile_entries(entry.entries, params))
            else:
                raise InvalidFilterError(
                    f"Filter must be a key/value pair or array, got {type(entry).__name__}"
                )

            conjunction = "AND"

        return "(" + "".join(parts) + ")"

    def _compile_predicate(self, predicate: Predicate, params: List[Any]) -> str:
        operator = predicate.operator
        if operator not in FILTER_OPERATORS:
            raise InvalidFilterError(
                f"Unsupported filter operator {operator!r} for column {predicate.column!r}"
            )
        column = self.quoter.quote(predicate.column)
        value = predicate.value

        if isinstance(value, Column):
            return f"{column} {operator} {self.quoter.quote(value.name)}"

        if is_scalar(value):
            params.append(value)
            return f"{column} {operator} {PLACEHOLDER}"

        if isinstance(value, (list, tuple)):
            if operator != "=":
                raise InvalidFilterError(
                    f"Operator {operator!r} cannot be used with a list of values"
                )
            if not value:
                raise InvalidFilterError(
                    f"Value list for column {predicate.column!r} must not be empty"
                )
            for item in value:
                if not is_scalar(item):
                    raise InvalidFilterError(
                        f"Value list for column {predicate.column!r} must contain scalars"
                    )
            params.extend(value)
            return f"{column} IN ({placeholders(len(value))})"

        raise InvalidFilterError(
            f"Invalid filter value for column {predicate.column!r}: {type(value).__name__}"
        )


def normalize_join(token: str) -> Optional[str]:
    """Return the canonical join keyword for token, or None if unrecognized."""
    normalized = _WHITESPACE.sub(" ", token.strip()).upper()
    return normalized if normalized in JOIN_TYPES else None


class TableCompiler:
    """
    Compiles table specifications into FROM clauses.

    Example:
        >>> quoter = IdentifierQuoter()
        >>> TableCompiler(quoter, FilterCompiler(quoter)).compile(
        ...     ["guestbook", "LEFT JOIN", {"author": {"guestbook.author": "author.id"}}]
        ... )
        '"guestbook" LEFT JOIN "author" ON ("guestbook"."author" = "author"."id")'
    """

    def __init__(self, quoter: IdentifierQuoter, filter_compiler: FilterCompiler):
        self.quoter = quoter
        self.filter_compiler = filter_compiler

    def compile(self, tables: TableLiteral) -> str:
        if isinstance(tables, str):
            tables = [tables]
        if not isinstance(tables, (list, tuple)) or not tables:
            raise InvalidTableError("Tables must be a table name or a non-empty list.")

        base = tables[0]
        if not isinstance(base, str):
            raise InvalidTableError(f"Base table must be a string, got {base!r}")
        clause = self.quoter.quote(base)

        join = DEFAULT_JOIN
        for element in tables[1:]:
            if isinstance(element, str):
                canonical = normalize_join(element)
                if canonical is None:
                    raise InvalidJoinError(f"Invalid join type: {element!r}")
                join = canonical
                continue

            if not isinstance(element, Mapping) or not element:
                raise InvalidTableError(
                    f"Joined table must be a table/predicate mapping, got {element!r}"
                )

            for table, predicate in element.items():
                clause += self._compile_join(join, table, predicate)
                join = DEFAULT_JOIN

        return clause

    def _compile_join(self, join: str, table: Any, predicate: Any) -> str:
        if not isinstance(table, str):
            raise InvalidTableError(f"Joined table name must be a string, got {table!r}")
        if not isinstance(predicate, Mapping):
            raise InvalidTableError(
                f"Join predicate for {table!r} must be a mapping, got {type(predicate).__name__}"
            )

        quoted = self.quoter.quote(table)
        if not predicate:
            if join != CROSS_JOIN:
                raise InvalidTableError(f"Join predicate for {table!r} must not be empty")
            return f" {join} {quoted}"

        entries = []
        for key, other in predicate.items():
            if not isinstance(key, str) or not isinstance(other, (str, Column)):
                raise InvalidTableError(
                    f"Join predicate for {table!r} must map columns to columns"
                )
            column, operator = split_column_operator(key)
            entries.append(
                Predicate(column, operator, other if isinstance(other, Column) else Column(other))
            )

        # Join predicates never bind values, the sink stays empty.
        on = self.filter_compiler.compile(Group(tuple(entries)), [])
        return f" {join} {quoted} ON {on}"

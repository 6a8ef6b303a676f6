"""
SQL statement builders.

Builds parameterized INSERT, UPDATE, DELETE and SELECT statements from
structured input. Builders return ``(sql, params)`` tuples and never touch a
connection; execution lives in structured_sql.db.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from structured_sql.exceptions import EmptyFilterError, EmptyValuesError, InvalidArgumentError
from structured_sql.infrastructure.sql.core.compiler import (
    PLACEHOLDER,
    FilterCompiler,
    TableCompiler,
    TableLiteral,
    placeholders,
)
from structured_sql.infrastructure.sql.core.filters import (
    DEFAULT_OPERATOR,
    FilterLiteral,
    parse_filters,
    split_column_operator,
)
from structured_sql.infrastructure.sql.core.identifier import IdentifierQuoter

ValueSet = Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]

# UPDATE operators: plain assignment plus increment/decrement
_SET_OPERATORS = {"=": None, "+=": "+", "-=": "-"}


def strip_column(key: str) -> str:
    """Drop an operator decoration such as ``+=`` from a column key."""
    return split_column_operator(key)[0]


def normalize_rows(values: ValueSet) -> List[Dict[str, Any]]:
    """
    Normalize a value set into a list of rows sharing one column set.

    Args:
        values: One mapping (single row) or a sequence of mappings

    Returns:
        List of row dictionaries

    Raises:
        EmptyValuesError: If there are no rows or the first row has no columns
        InvalidArgumentError: If a row is not a mapping, has a non-string
            column name or its columns differ from the first row
    """
    if isinstance(values, Mapping):
        rows = [values]
    elif isinstance(values, (list, tuple)):
        rows = list(values)
    else:
        raise InvalidArgumentError(
            f"Values must be a mapping or a list of mappings, got {type(values).__name__}"
        )

    if not rows or not rows[0]:
        raise EmptyValuesError("Values must not be empty.")

    columns = None
    normalized: List[Dict[str, Any]] = []
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise InvalidArgumentError(f"Row {i} must be a mapping")
        for key in row:
            _check_column_key(key)
        if columns is None:
            columns = set(row)
        elif set(row) != columns:
            raise InvalidArgumentError(f"Row {i} columns differ from the first row")
        normalized.append(dict(row))

    return normalized


def _check_column_key(key: Any) -> None:
    if not isinstance(key, str):
        raise InvalidArgumentError(f"Column name must be a string, got {key!r}")


def _is_empty_filter(filters: Optional[FilterLiteral]) -> bool:
    return filters is None or not parse_filters(filters)


def _as_list(value: Union[None, str, Sequence[str]]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class StatementBuilder:
    """
    Builds INSERT/UPDATE/DELETE/SELECT statements for one driver.

    Example:
        >>> builder = StatementBuilder(IdentifierQuoter('"'))
        >>> builder.build_insert("guestbook", ["id", "content"])
        'INSERT INTO "guestbook" ("id","content") VALUES (?,?)'
    """

    def __init__(self, quoter: IdentifierQuoter):
        self.quoter = quoter
        self.filter_compiler = FilterCompiler(quoter)
        self.table_compiler = TableCompiler(quoter, self.filter_compiler)

    def build_insert(self, table: str, columns: Sequence[str]) -> str:
        """
        Build an INSERT statement with one placeholder per column.

        Args:
            table: Table name
            columns: Column names, optionally decorated with an operator

        Returns:
            INSERT SQL statement
        """
        if not columns:
            raise EmptyValuesError("Column list must not be empty.")
        for column in columns:
            _check_column_key(column)
        quoted_cols = ",".join(self.quoter.quote(strip_column(c)) for c in columns)
        return (
            f"INSERT INTO {self.quoter.quote(table)} ({quoted_cols}) "
            f"VALUES ({placeholders(len(columns))})"
        )

    def build_update(
        self, table: str, values: Mapping[str, Any], filters: FilterLiteral
    ) -> Tuple[str, List[Any]]:
        """
        Build an UPDATE statement.

        ``col +=`` and ``col -=`` keys increment/decrement the column instead
        of assigning it.

        Returns:
            Tuple of (sql_string, parameters); SET parameters precede filter
            parameters

        Raises:
            EmptyValuesError: If values is empty
            EmptyFilterError: If filters is empty
            InvalidArgumentError: If a value key is not a string or uses an
                unsupported operator
        """
        if not values:
            raise EmptyValuesError("Values must not be empty.")
        if _is_empty_filter(filters):
            raise EmptyFilterError("Filters must not be empty.")

        params: List[Any] = []
        assignments = []
        for key, value in values.items():
            _check_column_key(key)
            column, operator = split_column_operator(key)
            if operator not in _SET_OPERATORS:
                raise InvalidArgumentError(
                    f"Unsupported update operator {operator!r} for column {column!r}"
                )
            quoted = self.quoter.quote(column)
            arithmetic = _SET_OPERATORS[operator]
            if arithmetic is None:
                assignments.append(f"{quoted} = {PLACEHOLDER}")
            else:
                assignments.append(f"{quoted} = {quoted} {arithmetic} {PLACEHOLDER}")
            params.append(value)

        where = self.filter_compiler.compile(filters, params)
        sql = f"UPDATE {self.quoter.quote(table)} SET {','.join(assignments)} WHERE {where}"
        return sql, params

    def build_delete(self, table: str, filters: FilterLiteral) -> Tuple[str, List[Any]]:
        """
        Build a DELETE statement.

        Raises:
            EmptyFilterError: If filters is empty
        """
        if _is_empty_filter(filters):
            raise EmptyFilterError("Filters must not be empty.")

        params: List[Any] = []
        where = self.filter_compiler.compile(filters, params)
        return f"DELETE FROM {self.quoter.quote(table)} WHERE {where}", params

    def build_select(
        self,
        columns: Union[str, Sequence[str]],
        tables: TableLiteral,
        filters: Optional[FilterLiteral] = None,
        order_columns: Union[None, str, Sequence[str]] = None,
    ) -> Tuple[str, List[Any]]:
        """
        Build a SELECT statement.

        WHERE and ORDER BY are omitted when filters / order_columns are empty.
        Order columns may carry a direction suffix (``"id DESC"``).

        Returns:
            Tuple of (sql_string, parameters)
        """
        column_list = _as_list(columns)
        if not column_list:
            raise InvalidArgumentError("Select column list must not be empty.")

        params: List[Any] = []
        sql = (
            f"SELECT {','.join(self.quoter.quote(c) for c in column_list)} "
            f"FROM {self.table_compiler.compile(tables)}"
        )
        if not _is_empty_filter(filters):
            sql += f" WHERE {self.filter_compiler.compile(filters, params)}"

        order_list = _as_list(order_columns)
        if order_list:
            sql += f" ORDER BY {','.join(self.quoter.quote(c) for c in order_list)}"

        return sql, params

    def build_upsert_update(
        self, table: str, row: Mapping[str, Any], key_columns: Sequence[str]
    ) -> Optional[Tuple[str, List[Any]]]:
        """
        Build the UPDATE that replaces a conflicting INSERT row.

        Key columns become an AND filter, the remaining columns the SET list.

        Returns:
            Tuple of (sql_string, parameters), or None if any key value is
            null, a key column is missing or the row has no non-key columns
        """
        plain = {strip_column(k): v for k, v in row.items()}
        if any(plain.get(key) is None for key in key_columns):
            return None

        keys = set(key_columns)
        values = {column: value for column, value in plain.items() if column not in keys}
        if not values:
            return None

        filters = {f"{key} {DEFAULT_OPERATOR}": plain[key] for key in key_columns}
        return self.build_update(table, values, filters)

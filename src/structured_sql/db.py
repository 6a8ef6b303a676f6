"""
Db facade.

Wraps a connection gateway and exposes structured INSERT/UPDATE/DELETE/SELECT
operations, nested transactions and the underlying compilers.

Usage:
    >>> from structured_sql import Db
    >>> db = Db({"driver": "sqlite"})
    >>> _ = db.query('CREATE TABLE guestbook (id integer primary key, content text)')
    >>> db.insert("guestbook", [{"id": 1, "content": "Hello"}, {"id": 2, "content": "Hi"}])
    2
    >>> db.select("content", "guestbook", [{"id": 1}, "or", {"id": 2}], ["id DESC"]).fetchall()
    [{'content': 'Hi'}, {'content': 'Hello'}]
"""

from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from structured_sql.config import Settings, get_driver_registry, get_settings
from structured_sql.config.drivers import DriverRegistry
from structured_sql.exceptions import ExecutionFailure, InvalidArgumentError
from structured_sql.infrastructure.sql.core.compiler import TableLiteral
from structured_sql.infrastructure.sql.core.filters import FilterLiteral, is_scalar
from structured_sql.infrastructure.sql.core.identifier import IdentifierQuoter
from structured_sql.infrastructure.sql.operations.statements import (
    StatementBuilder,
    ValueSet,
    normalize_rows,
)
from structured_sql.infrastructure.sql.operations.transactions import TransactionDepthTracker
from structured_sql.io.connectors.factory import connect, wrap_connection
from structured_sql.io.connectors.gateway import (
    ConnectionGateway,
    Params,
    PreparedStatement,
    Result,
)
from structured_sql.utils.logging import get_logger

logger = get_logger(__name__)

Statement = Union[str, PreparedStatement]


def _is_gateway(source: Any) -> bool:
    return all(
        hasattr(source, name)
        for name in ("driver_name", "prepare", "execute", "exec", "begin_transaction")
    )


class Db:
    """
    Structured query helper over one database connection.

    Args:
        source: Connection params mapping (``{"driver": "pgsql", ...}``), a
            ConnectionGateway, or an open DB-API connection
        options: Extra keyword arguments for the driver's connect(), used
            with a params mapping
        driver: Driver identifier for a raw DB-API connection; detected from
            the connection's module when omitted
        registry: Driver registry; the packaged one when omitted

    Raises:
        InvalidArgumentError: If source is none of the accepted shapes
        InvalidDriverError: If the driver is not registered
    """

    def __init__(
        self,
        source: Any,
        options: Optional[Mapping[str, Any]] = None,
        driver: Optional[str] = None,
        registry: Optional[DriverRegistry] = None,
    ):
        registry = registry or get_driver_registry()

        if isinstance(source, Mapping):
            gateway: ConnectionGateway = connect(source, options, registry)
        elif _is_gateway(source):
            gateway = source
        elif hasattr(source, "cursor"):
            gateway = wrap_connection(source, driver, registry)
        else:
            raise InvalidArgumentError(
                "source must be a params mapping, a connection gateway or a DB-API connection"
            )

        self._gateway = gateway
        self._quoter = IdentifierQuoter(registry.get(gateway.driver_name).quote_delimiter)
        self._builder = StatementBuilder(self._quoter)
        self._transactions = TransactionDepthTracker(gateway)

        logger.debug(
            "db.initialized",
            driver=gateway.driver_name,
            quote_delimiter=self._quoter.delimiter,
        )

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, options: Optional[Mapping[str, Any]] = None
    ) -> "Db":
        """Connect using STRUCTURED_SQL_* settings."""
        settings = settings or get_settings()
        return cls(settings.get_connection_params(), options)

    @property
    def gateway(self) -> ConnectionGateway:
        return self._gateway

    @property
    def connection(self) -> Any:
        """The raw DB-API connection, for driver features this class does not model."""
        return self._gateway.connection

    @property
    def driver_name(self) -> str:
        return self._gateway.driver_name

    @property
    def transaction_depth(self) -> int:
        return self._transactions.depth

    def close(self) -> None:
        self._gateway.close()

    def __enter__(self) -> "Db":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Queries

    def query(self, statement: Statement, params: Any = None) -> Result:
        """
        Execute a statement.

        Args:
            statement: SQL text or a PreparedStatement from this gateway
            params: None, a scalar, a sequence of values or a mapping of
                named parameters

        Returns:
            Result handle

        Raises:
            InvalidArgumentError: If statement or params have the wrong type
            ExecutionFailure: If the driver rejects the statement
        """
        if isinstance(statement, str):
            statement = self._gateway.prepare(statement)
        elif not isinstance(statement, PreparedStatement):
            raise InvalidArgumentError(
                "statement must be a PreparedStatement object or a string"
            )
        return self._gateway.execute(statement, self._normalize_params(params))

    @staticmethod
    def _normalize_params(params: Any) -> Optional[Params]:
        if params is None:
            return None
        if isinstance(params, Mapping):
            return params
        if isinstance(params, (list, tuple)):
            return list(params)
        if is_scalar(params):
            return [params]
        raise InvalidArgumentError(
            f"params must be a scalar, a sequence or a mapping, got {type(params).__name__}"
        )

    def _execute(self, statement: PreparedStatement, params: Sequence[Any]) -> int:
        result = self._gateway.execute(statement, list(params))
        try:
            return result.rowcount
        finally:
            result.close()

    def select(
        self,
        columns: Union[str, Sequence[str]],
        tables: TableLiteral,
        filters: Optional[FilterLiteral] = None,
        order_columns: Union[None, str, Sequence[str]] = None,
    ) -> Result:
        """
        Build and execute a SELECT.

        Example:
            >>> db.select(
            ...     "name",
            ...     ["guestbook as gb", {"author": {"gb.author": "author.id"}}],
            ...     {"gb.id": 1},
            ... ).fetchall()
            [{'name': 'joe'}]
        """
        sql, params = self._builder.build_select(columns, tables, filters, order_columns)
        return self._gateway.execute(self._gateway.prepare(sql), params)

    def insert(
        self,
        table: str,
        values: ValueSet,
        upsert_keys: Union[None, str, Sequence[str]] = None,
    ) -> int:
        """
        Insert one row (mapping) or many rows (list of mappings).

        When upsert_keys is given, a row that violates a unique or primary key
        constraint is updated instead, using the key columns as the filter.

        Returns:
            Total number of affected rows

        Raises:
            EmptyValuesError: If values is empty
            ExecutionFailure: If an insert fails and cannot be turned into an
                update
        """
        rows = normalize_rows(values)
        columns = list(rows[0])
        statement = self._gateway.prepare(self._builder.build_insert(table, columns))
        key_columns = [upsert_keys] if isinstance(upsert_keys, str) else list(upsert_keys or [])

        affected_rows = 0
        for row in rows:
            params = [row[column] for column in columns]
            if key_columns:
                affected_rows += self._insert_or_update(table, statement, params, row, key_columns)
            else:
                affected_rows += self._execute(statement, params)

        logger.debug("insert.completed", table=table, rows=len(rows), affected_rows=affected_rows)
        return affected_rows

    def _insert_or_update(
        self,
        table: str,
        statement: PreparedStatement,
        params: List[Any],
        row: Mapping[str, Any],
        key_columns: List[str],
    ) -> int:
        # The insert runs in its own transaction level so a failed statement
        # does not abort an enclosing transaction.
        self.begin_transaction()
        try:
            count = self._execute(statement, params)
        except ExecutionFailure as failure:
            self.rollback()
            update = None
            if failure.constraint_violation:
                update = self._builder.build_upsert_update(table, row, key_columns)
            if update is None:
                raise
            logger.info("insert.upsert_fallback", table=table, key_columns=key_columns)
            sql, update_params = update
            return self._execute(self._gateway.prepare(sql), update_params)
        except Exception:
            self.rollback()
            raise

        self.commit()
        return count

    def update(self, table: str, values: Mapping[str, Any], filters: FilterLiteral) -> int:
        """
        Build and execute an UPDATE.

        Value keys may be decorated with ``+=``/``-=`` to increment or
        decrement a column.

        Returns:
            Number of affected rows
        """
        sql, params = self._builder.build_update(table, values, filters)
        return self._execute(self._gateway.prepare(sql), params)

    def delete(self, table: str, filters: FilterLiteral) -> int:
        """Build and execute a DELETE, returning the number of affected rows."""
        sql, params = self._builder.build_delete(table, filters)
        return self._execute(self._gateway.prepare(sql), params)

    # Compilers

    def build_insert_statement(self, table: str, columns: Sequence[str]) -> str:
        return self._builder.build_insert(table, columns)

    def compile_filter(self, filters: FilterLiteral) -> Tuple[str, List[Any]]:
        """
        Compile a filter into text and its parameters.

        Example:
            >>> db.compile_filter({"id": [1, 2, 3]})
            ('("id" IN (?,?,?))', [1, 2, 3])
        """
        params: List[Any] = []
        text = self._builder.filter_compiler.compile(filters, params)
        return text, params

    def compile_tables(self, tables: TableLiteral) -> str:
        return self._builder.table_compiler.compile(tables)

    def quote(self, identifier: str) -> str:
        return self._quoter.quote(identifier)

    # Transactions

    def begin_transaction(self) -> bool:
        return self._transactions.begin()

    def commit(self) -> bool:
        return self._transactions.commit()

    def rollback(self) -> bool:
        return self._transactions.rollback()

    @contextmanager
    def transaction(self) -> Iterator["Db"]:
        """
        Run a block in a (possibly nested) transaction.

        Commits when the block finishes, rolls back and re-raises on error.
        """
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

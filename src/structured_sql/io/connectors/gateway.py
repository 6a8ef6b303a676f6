"""
Connection gateway over DB-API 2.0 connections.

The gateway is the only component that talks to a live database. It prepares
statements (translating ``?`` placeholders to the driver's paramstyle),
executes them, wraps driver errors in ExecutionFailure and provides the flat
BEGIN/COMMIT/ROLLBACK primitives that TransactionDepthTracker nests.

Connections are switched to autocommit on construction, so statements issued
outside an explicit transaction are committed immediately and the flat
transaction primitives are plain SQL statements.
"""

import importlib
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional, Protocol, Sequence, Union

from structured_sql.config.drivers import DriverConfig
from structured_sql.exceptions import ExecutionFailure
from structured_sql.utils.logging import get_logger

logger = get_logger(__name__)

Params = Union[Sequence[Any], Mapping[str, Any]]

_QUOTES = ("'", '"', "`")


def translate_placeholders(sql: str, paramstyle: str) -> str:
    """
    Translate ``?`` placeholders for format-paramstyle drivers.

    Placeholders inside quoted literals or identifiers are left alone and
    literal ``%`` characters are doubled. Text without any placeholder is
    returned untouched so statements using named parameters keep working.

    Examples:
        >>> translate_placeholders("SELECT * FROM t WHERE a = ? AND b LIKE 'x%'", "format")
        "SELECT * FROM t WHERE a = %s AND b LIKE 'x%%'"
        >>> translate_placeholders("SELECT '?'", "format")
        "SELECT '?'"
    """
    if paramstyle == "qmark" or "?" not in sql:
        return sql

    out: List[str] = []
    quote: Optional[str] = None
    found = False
    for ch in sql:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "?":
            out.append("%s")
            found = True
            continue
        out.append("%%" if ch == "%" else ch)

    return "".join(out) if found else sql


class ErrorInfo(NamedTuple):
    sqlstate: Optional[str]
    code: Any
    message: str


@dataclass(frozen=True)
class PreparedStatement:
    """A statement ready for repeated execution on one gateway."""

    sql: str
    driver_sql: str


class Result:
    """
    Result handle wrapping a DB-API cursor.

    Rows are returned as dictionaries keyed by column name.
    """

    def __init__(self, cursor: Any, statement: PreparedStatement):
        self._cursor = cursor
        self.statement = statement

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def lastrowid(self) -> Any:
        return getattr(self._cursor, "lastrowid", None)

    @property
    def columns(self) -> List[str]:
        description = self._cursor.description or ()
        return [column[0] for column in description]

    def _to_dict(self, row: Any) -> Dict[str, Any]:
        if isinstance(row, Mapping):
            return dict(row)
        return dict(zip(self.columns, row))

    def fetchone(self) -> Optional[Dict[str, Any]]:
        if self._cursor.description is None:
            return None
        row = self._cursor.fetchone()
        return None if row is None else self._to_dict(row)

    def fetchall(self) -> List[Dict[str, Any]]:
        if self._cursor.description is None:
            return []
        return [self._to_dict(row) for row in self._cursor.fetchall()]

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def close(self) -> None:
        self._cursor.close()


class ConnectionGateway(Protocol):
    """Capabilities the query layer needs from a database connection."""

    @property
    def driver_name(self) -> str: ...

    @property
    def connection(self) -> Any: ...

    def prepare(self, sql: str) -> PreparedStatement: ...
    def execute(self, statement: PreparedStatement, params: Optional[Params] = None) -> Result: ...
    def exec(self, sql: str) -> None: ...
    def begin_transaction(self) -> bool: ...
    def commit(self) -> bool: ...
    def rollback(self) -> bool: ...
    def error_info(self) -> Optional[ErrorInfo]: ...
    def close(self) -> None: ...


class DbApiGateway:
    """
    ConnectionGateway implementation for DB-API 2.0 connections.

    Args:
        connection: Open DB-API connection (sqlite3, psycopg2, pymysql, ...)
        driver: Registry entry describing the connection's driver
        module: DB-API module providing the Error hierarchy; imported from
            driver.module when omitted
    """

    def __init__(self, connection: Any, driver: DriverConfig, module: Any = None):
        self._connection = connection
        self.driver = driver
        self._module = module or importlib.import_module(driver.module)
        self._last_error: Optional[ErrorInfo] = None
        self._enable_autocommit()

    @property
    def driver_name(self) -> str:
        return self.driver.name

    @property
    def connection(self) -> Any:
        """The raw DB-API connection, for features this layer does not model."""
        return self._connection

    def _enable_autocommit(self) -> None:
        mode = self.driver.autocommit
        if mode == "method":
            self._connection.autocommit(True)
        elif mode == "isolation_level":
            self._connection.isolation_level = None
        else:
            self._connection.autocommit = True

    def prepare(self, sql: str) -> PreparedStatement:
        return PreparedStatement(sql, translate_placeholders(sql, self.driver.paramstyle))

    def execute(
        self, statement: PreparedStatement, params: Optional[Params] = None
    ) -> Result:
        """
        Execute a prepared statement.

        Raises:
            ExecutionFailure: If the driver rejects the statement
        """
        cursor = self._connection.cursor()
        try:
            if params:
                cursor.execute(statement.driver_sql, params)
            else:
                cursor.execute(statement.driver_sql)
        except self._module.Error as e:
            cursor.close()
            raise self._failure(e, statement.sql) from e

        self._last_error = None
        logger.debug(
            "sql.executed",
            driver=self.driver.name,
            sql=statement.sql,
            param_count=len(params) if params else 0,
            rowcount=cursor.rowcount,
        )
        return Result(cursor, statement)

    def exec(self, sql: str) -> None:
        """Execute a statement without parameters and discard its cursor."""
        self.execute(self.prepare(sql)).close()

    def begin_transaction(self) -> bool:
        self.exec(self.driver.begin_statement)
        return True

    def commit(self) -> bool:
        self.exec("COMMIT")
        return True

    def rollback(self) -> bool:
        self.exec("ROLLBACK")
        return True

    def error_info(self) -> Optional[ErrorInfo]:
        """Details of the last failed statement, or None after a success."""
        return self._last_error

    def close(self) -> None:
        self._connection.close()
        logger.info("db.closed", driver=self.driver.name)

    def _failure(self, error: BaseException, sql: str) -> ExecutionFailure:
        sqlstate = getattr(error, "pgcode", None) or getattr(error, "sqlstate", None)
        code = getattr(error, "sqlite_errorcode", None)
        if code is None and error.args and isinstance(error.args[0], int):
            code = error.args[0]
        constraint_violation = self.driver.is_constraint_violation(error, self._module)

        self._last_error = ErrorInfo(sqlstate, code, str(error))
        failure = ExecutionFailure(
            f"Statement failed on {self.driver.name}: {error}",
            original_error=error,
            sql=sql,
            sqlstate=sqlstate,
            code=code,
            constraint_violation=constraint_violation,
        )
        # driver messages may echo bound values
        logger.warning(
            "sql.failed",
            driver=self.driver.name,
            sql=sql,
            error_type=type(error).__name__,
            sqlstate=sqlstate,
            code=code,
            constraint_violation=constraint_violation,
        )
        return failure

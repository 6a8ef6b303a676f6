"""Pytest configuration: shared fixtures for unit, sqlite and PostgreSQL suites.

.env.test is loaded FIRST (if present) so STRUCTURED_SQL_* settings and the
optional STRUCTURED_SQL_TEST_PG_DSN come from one file.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

_TEST_ENV_FILE = Path(__file__).parent.parent / ".env.test"
if _TEST_ENV_FILE.exists():
    load_dotenv(_TEST_ENV_FILE, override=True)

import os
import re
import sqlite3
import uuid
from typing import Any, Callable, Generator, List, Optional, Tuple

import pytest

from structured_sql import Db
from structured_sql.config import get_driver_registry, get_settings
from structured_sql.exceptions import ExecutionFailure
from structured_sql.io.connectors.gateway import PreparedStatement

PG_DSN_ENV = "STRUCTURED_SQL_TEST_PG_DSN"

GUESTBOOK_ROWS = [
    (1, 1, "Hello buddy!", "2010-04-24", 1),
    (2, 2, "I like it!", "2010-04-26", 0),
    (3, 3, "Hello world!", "2010-05-01", 0),
]
AUTHOR_ROWS = [(1, "joe"), (2, "nancy"), (3, "suzy")]

SCHEMA_SQL = [
    """CREATE TABLE guestbook (
        id      integer primary key,
        author  integer,
        content varchar(255),
        created varchar(10),
        views   integer
    )""",
    """CREATE TABLE author (
        id   integer primary key,
        name varchar(255)
    )""",
]


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeResult:
    def __init__(self, rowcount: int = 1):
        self.rowcount = rowcount
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeGateway:
    """In-memory ConnectionGateway recording every call.

    ``failures`` maps a SQL prefix to an exception raised when a statement
    starting with it is executed.
    """

    def __init__(self, driver_name: str = "pgsql", rowcount: int = 1):
        self.driver_name = driver_name
        self.connection = object()
        self.rowcount = rowcount
        self.executed: List[Tuple[str, Any]] = []
        self.calls: List[str] = []
        self.failures: dict[str, BaseException] = {}

    def prepare(self, sql: str) -> PreparedStatement:
        return PreparedStatement(sql, sql)

    def execute(self, statement: PreparedStatement, params: Optional[Any] = None) -> FakeResult:
        self.executed.append((statement.sql, params))
        for prefix, error in self.failures.items():
            if statement.sql.startswith(prefix):
                raise error
        return FakeResult(self.rowcount)

    def exec(self, sql: str) -> None:
        self.calls.append(sql)

    def begin_transaction(self) -> bool:
        self.calls.append("BEGIN")
        return True

    def commit(self) -> bool:
        self.calls.append("COMMIT")
        return True

    def rollback(self) -> bool:
        self.calls.append("ROLLBACK")
        return True

    def error_info(self) -> None:
        return None

    def close(self) -> None:
        self.calls.append("CLOSE")


@pytest.fixture
def make_gateway() -> Callable[..., FakeGateway]:
    """Factory for recording gateways, e.g. ``make_gateway("mysql", rowcount=2)``."""
    return FakeGateway


@pytest.fixture
def constraint_failure() -> Callable[..., ExecutionFailure]:
    """Factory for ExecutionFailure instances flagged as constraint violations."""

    def _make(message: str = "UNIQUE constraint failed") -> ExecutionFailure:
        return ExecutionFailure(message, constraint_violation=True)

    return _make


@pytest.fixture
def fake_gateway() -> FakeGateway:
    """Recording gateway for the pgsql driver."""
    return FakeGateway()


@pytest.fixture
def fake_db(fake_gateway: FakeGateway) -> Db:
    """Db over a recording gateway using the double-quote delimiter."""
    return Db(fake_gateway)


def _seed(db: Db) -> None:
    for statement in SCHEMA_SQL:
        db.query(statement).close()
    for row in GUESTBOOK_ROWS:
        db.query(
            "INSERT INTO guestbook (id, author, content, created, views) VALUES (?,?,?,?,?)",
            row,
        ).close()
    for row in AUTHOR_ROWS:
        db.query("INSERT INTO author (id, name) VALUES (?,?)", row).close()


@pytest.fixture
def sqlite_db() -> Generator[Db, None, None]:
    """Db over a fresh in-memory sqlite database with guestbook/author data."""
    db = Db(sqlite3.connect(":memory:"))
    _seed(db)
    try:
        yield db
    finally:
        db.close()


def _validate_test_database(dsn: str) -> bool:
    """Refuse to run destructive tests against a database not named like a test one."""
    match = re.search(r"(?:dbname=|/)([\w-]+)\s*$", dsn.strip())
    db_name = match.group(1) if match else ""
    if not re.search(r"(test|tmp|dev|local|sandbox)", db_name, re.IGNORECASE):
        raise RuntimeError(
            f"Refusing to run tests against non-test database: {db_name or dsn!r}. "
            "Test databases must contain one of: test, tmp, dev, local, sandbox."
        )
    return True


@pytest.fixture
def postgres_db() -> Generator[Db, None, None]:
    """Db over PostgreSQL using a throwaway schema; skipped without a DSN."""
    dsn = os.environ.get(PG_DSN_ENV)
    if not dsn:
        pytest.skip(f"{PG_DSN_ENV} must be set for PostgreSQL-backed tests")
    _validate_test_database(dsn)

    schema = f"structured_sql_test_{uuid.uuid4().hex[:8]}"
    db = Db({"driver": "pgsql", "dsn": dsn})
    db.gateway.exec(f"CREATE SCHEMA {schema}")
    db.gateway.exec(f"SET search_path TO {schema}")
    _seed(db)
    try:
        yield db
    finally:
        db.gateway.exec(f"DROP SCHEMA IF EXISTS {schema} CASCADE")
        db.close()


@pytest.fixture
def registry():
    """The packaged driver registry."""
    return get_driver_registry()

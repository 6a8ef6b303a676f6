"""
Nested transactions over a flat transaction primitive.

The outermost begin/commit/rollback delegates to the gateway's flat
transaction methods; inner levels use savepoints named ``LEVEL<depth>``.
"""

from typing import Protocol

from structured_sql.exceptions import TransactionStateError
from structured_sql.utils.logging import get_logger

logger = get_logger(__name__)

SAVEPOINT_PREFIX = "LEVEL"


class TransactionalGateway(Protocol):
    """Subset of the connection gateway used for transactions."""

    def begin_transaction(self) -> bool: ...
    def commit(self) -> bool: ...
    def rollback(self) -> bool: ...
    def exec(self, sql: str) -> None: ...


def savepoint_name(depth: int) -> str:
    return f"{SAVEPOINT_PREFIX}{depth}"


class TransactionDepthTracker:
    """
    Maps nested begin/commit/rollback calls onto one flat transaction.

    Commit or rollback without a matching begin raises TransactionStateError
    and leaves the depth at 0.
    """

    def __init__(self, gateway: TransactionalGateway):
        self._gateway = gateway
        self._depth = 0

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def begin(self) -> bool:
        if self._depth == 0:
            result = self._gateway.begin_transaction()
        else:
            self._gateway.exec(f"SAVEPOINT {savepoint_name(self._depth)}")
            result = True

        self._depth += 1
        logger.debug("transaction.begin", depth=self._depth)
        return result

    def commit(self) -> bool:
        self._leave("commit")
        logger.debug("transaction.commit", depth=self._depth)
        if self._depth == 0:
            return self._gateway.commit()

        self._gateway.exec(f"RELEASE SAVEPOINT {savepoint_name(self._depth)}")
        return True

    def rollback(self) -> bool:
        self._leave("rollback")
        logger.debug("transaction.rollback", depth=self._depth)
        if self._depth == 0:
            return self._gateway.rollback()

        self._gateway.exec(f"ROLLBACK TO SAVEPOINT {savepoint_name(self._depth)}")
        return True

    def _leave(self, action: str) -> None:
        if self._depth == 0:
            raise TransactionStateError(f"Cannot {action}: no active transaction.")
        self._depth -= 1

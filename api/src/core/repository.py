"""Shared Cassandra data-access helpers.

Services inherit from `CassandraRepository` to get:
- Statement preparation against the configured keyspace
- Driver error wrapping into PersistenceError
- Lightweight-transaction helpers (INSERT ... IF NOT EXISTS, UPDATE ... IF)
"""

from typing import TYPE_CHECKING, Any

import structlog
from cassandra import DriverException, RequestExecutionException
from cassandra.cluster import NoHostAvailable

from src.core.exceptions import PersistenceError


if TYPE_CHECKING:
    from cassandra.cluster import ResultSet, Session
    from cassandra.query import PreparedStatement

logger = structlog.get_logger(__name__)

_DRIVER_ERRORS = (DriverException, RequestExecutionException, NoHostAvailable)

# Largest value a CQL INT column holds
CQL_INT_MAX = 2**31 - 1


class CassandraRepository:
    """Base class for services backed by Cassandra tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session and prepare statements."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements. Subclasses override."""

    def _prepare(self, cql: str) -> "PreparedStatement":
        """Prepare a statement; `{keyspace}` is substituted from settings."""
        return self.session.prepare(cql.format(keyspace=self.keyspace))

    async def _execute(
        self,
        statement: Any,
        params: list[Any] | None = None,
    ) -> "ResultSet":
        """Execute a statement, wrapping driver failures.

        Raises:
            PersistenceError: If Cassandra rejects or cannot serve the request
        """
        try:
            return await self.session.aexecute(statement, params or [])
        except _DRIVER_ERRORS as e:
            logger.error(
                "cassandra_request_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            msg = "Armazenamento indisponivel"
            raise PersistenceError(msg) from e

    async def _execute_conditional(
        self,
        statement: Any,
        params: list[Any] | None = None,
    ) -> bool:
        """Execute a lightweight transaction.

        Returns:
            True if the condition held and the write was applied
        """
        result = await self._execute(statement, params)
        return bool(result.was_applied)

    async def _fetch_one(self, statement: Any, params: list[Any]) -> Any:
        """Execute a read and return the first row or None."""
        result = await self._execute(statement, params)
        return result.one()

    async def _fetch_all(self, statement: Any, params: list[Any]) -> list[Any]:
        """Execute a read and materialize all rows."""
        return list(await self._execute(statement, params))

    async def _count(self, statement: Any, params: list[Any] | None = None) -> int:
        """Execute a `SELECT COUNT(*)` and return the count (0 when empty)."""
        row = await self._fetch_one(statement, params or [])
        return int(row.count) if row else 0

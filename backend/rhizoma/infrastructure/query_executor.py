"""Query Executor: sends one statement over a link and normalizes the outcome.

Invariants:
    - query_count increments exactly once per execute() call, failures included
    - Empty query or missing link raises DatabaseError before touching the driver
    - A link still being established is awaited first; its failure propagates as
      RhizomaError (DatabaseError for driver problems), never swallowed
    - Refused/lost connections -> ConnectionLostError; every other driver failure ->
      DatabaseError carrying the driver message, with query and driver message in
      debug_info; clients only ever see the generic query failure message
    - Rows are materialized before returning (link free for the next query); a
      single-row request copies only the first row and discards the rest

Design Decisions:
    - exec_driver_sql over text(): statements are raw SQL, no bind-parameter parsing
    - insert_id only read where the dialect post-fetches lastrowid (MySQL, SQLite);
      RETURNING rows cover PostgreSQL
"""

import inspect
import logging
from typing import Awaitable

from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from rhizoma.core.domain_types import QueryResult
from rhizoma.core.errors import (
    ConnectionLostError, DatabaseError, ErrorContext, RhizomaError,
)

logger = logging.getLogger(__name__)

# MySQL client codes: can't connect (socket/TCP), server gone away, lost during query
_MYSQL_CONNECTION_CODES = frozenset({2002, 2003, 2006, 2013})


def is_connection_lost(exc: BaseException) -> bool:
    """True when a driver error means the server refused or dropped the connection."""
    if isinstance(exc, ConnectionError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True
    orig = exc.orig
    if isinstance(orig, ConnectionError):
        return True
    code = orig.args[0] if orig is not None and orig.args else None
    return code in _MYSQL_CONNECTION_CODES


def _materialize(
    result: CursorResult, link: AsyncConnection, single: bool = False,
) -> QueryResult:
    if result.returns_rows:
        affected = max(result.rowcount, 0)
        if single:
            first = result.mappings().first()
            rows = [dict(first)] if first is not None else []
        else:
            rows = [dict(row) for row in result.mappings()]
        return QueryResult(rows=rows, affected_rows=affected)
    insert_id = result.lastrowid if link.dialect.postfetch_lastrowid else None
    return QueryResult(insert_id=insert_id, affected_rows=max(result.rowcount, 0))


class QueryExecutor:
    """Executes statements and counts them."""

    def __init__(self):
        self.query_count = 0

    async def execute(
        self,
        query: str,
        link: AsyncConnection | Awaitable[AsyncConnection] | None,
        single: bool = False,
    ) -> QueryResult:
        """Run query on link. With single=True only the first row is copied out."""
        self.query_count += 1
        if not query or link is None:
            if inspect.iscoroutine(link):
                link.close()
            raise DatabaseError("Query and link cannot be empty", "query", query)
        link = await self._resolve_link(link)
        try:
            result = await link.exec_driver_sql(query)
            return _materialize(result, link, single)
        except (SQLAlchemyError, OSError) as e:
            raise self._map_error(e, query) from e

    async def _resolve_link(
        self, link: AsyncConnection | Awaitable[AsyncConnection],
    ) -> AsyncConnection:
        # AsyncConnection is itself awaitable (await starts it), so test type first
        if isinstance(link, AsyncConnection) or not inspect.isawaitable(link):
            return link
        try:
            return await link
        except RhizomaError:
            raise
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Link resolution failed: {e}")
            raise DatabaseError(
                "Database link could not be resolved", "connect",
            ) from e

    def _map_error(self, exc: BaseException, query: str) -> DatabaseError:
        if is_connection_lost(exc):
            logger.error(
                f"Connection lost while executing query: {exc}",
                extra={"query": query, "error_code": "DATABASE_CONNECTION_LOST"},
            )
            return ConnectionLostError(query)
        message = str(getattr(exc, "orig", None) or exc)
        logger.error(
            f"Query failed: {message}",
            extra={"query": query, "error_code": "DATABASE_ERROR"},
        )
        context = ErrorContext(debug_info={"driver_message": message})
        return DatabaseError(message, "query", query, context)

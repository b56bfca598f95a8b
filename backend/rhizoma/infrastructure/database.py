"""Database: read cache, writes, delayed queries and scripts over role-keyed links.

Invariants:
    - Reads go through the query cache: a hit returns a copy of the stored value and
      runs nothing; callers mutating a result never alter the cached entry
    - Every insert/update/delete clears the whole cache before executing
    - Cache keys separate transform identity and single-row requests (no normalization)
    - disable_query_cache() drops the cache; enable_query_cache() builds a fresh empty one,
      unless settings forbid caching or a cache is already active
    - Script statements run independently; failures aggregate into ScriptExecutionError
    - assert_installed() caches only a positive result

Design Decisions:
    - Singleton `database` initialized on startup: FastAPI lifespan manages lifecycle
      (no global import side effects)
    - Every public coroutine wrapped by supports_callback: awaitable or callback(error, result)
    - Concurrent reads and writes are not serialized: a read racing a write may see
      either cache state; two writes clearing the cache twice is harmless
"""

import asyncio
import copy
import logging
from pathlib import Path
from typing import Any

from sqlalchemy import literal
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncConnection

from rhizoma.config import Settings
from rhizoma.core.connection_config import ConnectionConfigResolver
from rhizoma.core.domain_types import DelayedHandler, QueryResult, Role
from rhizoma.core.errors import (
    DatabaseError, InstallationError, RhizomaError, ScriptExecutionError,
)
from rhizoma.core.lru_cache import LRUCache
from rhizoma.core.query_cache import (
    MISSING, QUERY_CACHE_SIZE, RowTransform, build_cache_key, transform_identity,
)
from rhizoma.core.sql_script import split_sql_script
from rhizoma.infrastructure.delayed_queries import DelayedQueryQueue
from rhizoma.infrastructure.delivery import supports_callback
from rhizoma.infrastructure.link_manager import LinkManager
from rhizoma.infrastructure.query_executor import QueryExecutor

logger = logging.getLogger(__name__)

NOT_INSTALLED_MESSAGE = (
    "Unable to handle this request. This site is not configured or the database is down."
)


class Database:
    """One Rhizoma database: links, query cache, delayed queries."""

    def __init__(
        self,
        settings: Settings,
        links: LinkManager | None = None,
        executor: QueryExecutor | None = None,
    ):
        self._settings = settings
        self._table_prefix = settings.db_prefix
        self._links = links or LinkManager(ConnectionConfigResolver(settings))
        self._executor = executor or QueryExecutor()
        self._delayed = DelayedQueryQueue(self._links, self._executor)
        self._query_cache: LRUCache | None = None
        self._installed = False
        self.enable_query_cache()

    @property
    def table_prefix(self) -> str:
        return self._table_prefix

    @property
    def query_count(self) -> int:
        return self._executor.query_count

    @property
    def query_cache(self) -> LRUCache | None:
        return self._query_cache

    # ─── Links ───────────────────────────────────────────────────

    @supports_callback
    async def get_link(self, role: Role | str) -> AsyncConnection:
        return await self._links.get_link(role)

    async def dispose(self) -> None:
        await self._links.dispose()

    # ─── Reads (cached) ──────────────────────────────────────────

    @supports_callback
    async def get_many(
        self,
        query: str,
        transform: RowTransform | None = None,
        transform_id: str | None = None,
    ) -> list[Any]:
        """All rows of query (or transform(row) for each). Empty list when none match."""
        return await self._get_results(query, transform, transform_id, single=False)

    @supports_callback
    async def get_one(
        self,
        query: str,
        transform: RowTransform | None = None,
        transform_id: str | None = None,
    ) -> Any:
        """First row of query (or its transform), or None."""
        return await self._get_results(query, transform, transform_id, single=True)

    async def _get_results(
        self,
        query: str,
        transform: RowTransform | None,
        transform_id: str | None,
        single: bool,
    ) -> Any:
        key = build_cache_key(query, transform_identity(transform, transform_id), single)

        if self._query_cache is not None:
            cached = self._query_cache.get(key, MISSING)
            if cached is not MISSING:
                logger.info(
                    f"DB query {query} results returned from cache",
                    extra={"query": query, "cache_key": key},
                )
                return copy.deepcopy(cached)

        link = self._links.get_link(Role.READ)
        result = await self._executor.execute(query, link, single=single)

        if single:
            value = None
            if result.rows:
                row = result.rows[0]
                value = transform(row) if transform is not None else row
        elif transform is not None:
            value = [transform(row) for row in result.rows]
        else:
            value = result.rows

        if not result.rows:
            logger.info(f"DB query {query} returned no results.", extra={"query": query})

        if self._query_cache is not None:
            self._query_cache.set(key, copy.deepcopy(value))
            logger.info(
                f"DB query {query} results cached",
                extra={"query": query, "cache_key": key},
            )
        return value

    # ─── Writes ──────────────────────────────────────────────────

    @supports_callback
    async def insert_data(self, query: str) -> int | None:
        """Insert a row. Returns the generated id (0/None when the table has none)."""
        result = await self._write(query)
        if result.insert_id is None and result.rows:
            # PostgreSQL: INSERT ... RETURNING id
            return next(iter(result.rows[0].values()))
        return result.insert_id

    @supports_callback
    async def update_data(self, query: str, get_num_rows: bool = False) -> bool | int:
        """Update rows. Returns True, or the affected row count when get_num_rows."""
        result = await self._write(query)
        if get_num_rows:
            return result.affected_rows
        return True

    @supports_callback
    async def delete_data(self, query: str) -> int:
        """Delete rows. Returns the affected row count."""
        result = await self._write(query)
        return result.affected_rows

    async def _write(self, query: str) -> QueryResult:
        logger.info(f"DB query {query}", extra={"query": query})
        self.invalidate_query_cache()
        link = self._links.get_link(Role.WRITE)
        return await self._executor.execute(query, link)

    # ─── Query cache ─────────────────────────────────────────────

    def enable_query_cache(self) -> None:
        """Create an empty cache. Never overrides settings.db_disable_query_cache."""
        if self._settings.query_cache_enabled and self._query_cache is None:
            self._query_cache = LRUCache(QUERY_CACHE_SIZE)

    def disable_query_cache(self) -> None:
        """Drop the cache, e.g. for scripts that pull large results in one query."""
        self._query_cache = None

    def invalidate_query_cache(self) -> None:
        if self._query_cache is not None:
            self._query_cache.clear()
            logger.info("Query cache invalidated")

    # ─── Delayed queries ─────────────────────────────────────────

    def register_delayed_query(
        self,
        query: str,
        role: Role | str | AsyncConnection,
        handler: DelayedHandler | None = None,
    ) -> bool:
        """Queue query for the end of the unit of work. False if role is not usable."""
        return self._delayed.register(query, role, handler)

    @property
    def delayed_queries(self):
        return self._delayed.pending

    async def flush_delayed_queries(self) -> int:
        """Execute every queued query once. Never raises."""
        return await self._delayed.flush()

    # ─── Scripts ─────────────────────────────────────────────────

    @supports_callback
    async def run_sql_script(self, script_location: str | Path) -> None:
        """Run a dump-style SQL file, continuing past failing statements."""
        path = Path(script_location)
        try:
            script = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            raise DatabaseError(
                f"Rhizoma couldn't find the requested database script at {path}.",
                "script",
            ) from e

        failures = []
        for statement in split_sql_script(script, self._table_prefix):
            try:
                await self.update_data(statement)
            except DatabaseError as e:
                failures.append(e.message)
        if failures:
            raise ScriptExecutionError(failures)

    # ─── Installation ────────────────────────────────────────────

    @supports_callback
    async def assert_installed(self) -> None:
        if self._installed:
            return
        query = f"SELECT value FROM {self._table_prefix}datalists WHERE name = 'installed'"
        try:
            await self._executor.execute(query, self._links.get_link(Role.READ))
        except RhizomaError as e:
            raise InstallationError(NOT_INSTALLED_MESSAGE) from e
        self._installed = True

    # ─── Sanitizing ──────────────────────────────────────────────

    @staticmethod
    def sanitize_int(value: Any, signed: bool = True) -> int:
        value = int(value)
        if not signed and value < 0:
            value = 0
        return value

    def sanitize_string(self, value: str) -> str:
        """Quote and escape value as a SQL string literal for the configured dialect."""
        dialect = URL.create(self._settings.db_driver).get_dialect()()
        return str(literal(str(value)).compile(
            dialect=dialect, compile_kwargs={"literal_binds": True},
        ))


# Singleton (initialized on startup)
database: Database | None = None


def init_database(settings: Settings) -> Database:
    global database
    database = Database(settings)
    return database


def get_database() -> Database:
    """FastAPI dependency for the process-wide Database."""
    if database is None:
        raise RuntimeError("Database not initialized")
    return database

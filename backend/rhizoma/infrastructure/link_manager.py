"""Link Manager: lazily opens and memoizes one database link per role.

Invariants:
    - At most one live link per Role (role-keyed table owned here exclusively)
    - An existing READ_WRITE link serves every role
    - Concurrent requests for an unestablished role share one in-flight establishment
    - Failed establishment is not memoized: the next request retries
    - Establishment failures surface as DatabaseError with a fixed message (driver text only in logs)

Design Decisions:
    - Link = SQLAlchemy AsyncConnection on an AUTOCOMMIT engine: writes are visible
      to other links immediately, like a plain driver connection
    - Split mode establishes read and write together; READ_WRITE requests in split
      mode are served by the write link
    - Charset statement chosen by dialect name, issued right after connect
"""

import asyncio
import logging

from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from rhizoma.core.connection_config import ConnectionConfigResolver, parse_role
from rhizoma.core.domain_types import ConnectionConfig, Role
from rhizoma.core.errors import DatabaseError, ErrorContext

logger = logging.getLogger(__name__)

Link = AsyncConnection

CONNECT_FAILURE_MESSAGE = (
    "Rhizoma couldn't connect to the database using the given credentials. "
    "Check the settings file."
)

_CHARSET_STATEMENTS = {
    "mysql": "SET NAMES utf8",
    "mariadb": "SET NAMES utf8",
    "postgresql": "SET client_encoding TO 'UTF8'",
    "sqlite": "PRAGMA encoding = 'UTF-8'",
}


def charset_statement(dialect_name: str) -> str:
    return _CHARSET_STATEMENTS.get(dialect_name, "SET NAMES utf8")


def build_url(config: ConnectionConfig) -> URL:
    return URL.create(
        drivername=config.driver,
        username=config.user or None,
        password=config.password or None,
        host=config.host or None,
        port=config.port,
        database=config.database,
    )


class LinkManager:
    """Owns the role -> link table and the engines behind it."""

    def __init__(self, resolver: ConnectionConfigResolver):
        self._resolver = resolver
        self._links: dict[Role, Link] = {}
        self._engines: dict[Role, AsyncEngine] = {}
        self._pending: dict[Role, asyncio.Task] = {}

    def cached_link(self, role: Role | str) -> Link | None:
        """Return an established link for role without connecting."""
        role = parse_role(role)
        return self._links.get(role) or self._links.get(Role.READ_WRITE)

    async def get_link(self, role: Role | str) -> Link:
        """Return the link for role, establishing connections on first use."""
        link = self.cached_link(role)
        if link is not None:
            return link
        return await self._setup_connections(parse_role(role))

    async def _setup_connections(self, role: Role) -> Link:
        if not self._resolver.is_split:
            return await self._start(Role.READ_WRITE)
        read = self._start(Role.READ)
        write = self._start(Role.WRITE)
        return await (read if role is Role.READ else write)

    def _start(self, role: Role) -> asyncio.Task:
        """Return the in-flight establishment for role, starting one if needed."""
        task = self._pending.get(role)
        if task is None:
            task = asyncio.ensure_future(self._establish(role))
            self._pending[role] = task
            task.add_done_callback(lambda t, r=role: self._finish(r, t))
        return task

    def _finish(self, role: Role, task: asyncio.Task) -> None:
        if self._pending.get(role) is task:
            del self._pending[role]
        # mark sibling failures as retrieved; _establish already logged them
        if not task.cancelled():
            task.exception()

    async def _establish(self, role: Role) -> Link:
        if role in self._links:
            return self._links[role]
        config = self._resolver.resolve(role)
        engine = create_async_engine(build_url(config), isolation_level="AUTOCOMMIT")
        try:
            link = await engine.connect()
            await link.exec_driver_sql(charset_statement(engine.dialect.name))
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Could not establish {role.value} link: {e}",
                extra={"role": role.value},
            )
            await engine.dispose()
            raise DatabaseError(
                CONNECT_FAILURE_MESSAGE, "connect", context=ErrorContext(role=role.value),
            ) from e
        self._links[role] = link
        self._engines[role] = engine
        logger.info(f"Database {role.value} link established", extra={"role": role.value})
        return link

    async def dispose(self) -> None:
        """Close every link and engine. Only used at process shutdown."""
        for role, link in list(self._links.items()):
            await link.close()
            await self._engines[role].dispose()
        self._links.clear()
        self._engines.clear()

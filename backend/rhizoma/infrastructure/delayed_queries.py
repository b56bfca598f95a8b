"""Delayed Query Queue: statements deferred to the end of the unit of work.

Invariants:
    - register() accepts only Role.READ, Role.WRITE (or their strings) or an established link;
      anything else returns False and enqueues nothing
    - flush() drains the queue and runs each entry exactly once, in registration order
    - Handlers receive their own entry's raw QueryResult (the query cache is bypassed)
    - flush() never raises: failures are logged because the caller is gone

Design Decisions:
    - Sequential flush: entry N+1 starts after entry N completes, so ordering holds
      even when several entries share one link
    - Entries registered while a flush runs wait for the next flush
    - Failures are logged, not raised: flush runs after the response is sent, so no
      caller is left to receive them
"""

import logging

from sqlalchemy.ext.asyncio import AsyncConnection

from rhizoma.core.domain_types import DelayedHandler, DelayedQuery, Role
from rhizoma.infrastructure.link_manager import LinkManager
from rhizoma.infrastructure.query_executor import QueryExecutor

logger = logging.getLogger(__name__)

_ROLES = {Role.READ.value: Role.READ, Role.WRITE.value: Role.WRITE}


def _role_name(target: str) -> str:
    # Enum members hash by member name, so look up by value
    return target.value if isinstance(target, Role) else target


class DelayedQueryQueue:
    """Append-only queue of DelayedQuery entries until flushed."""

    def __init__(self, links: LinkManager, executor: QueryExecutor):
        self._links = links
        self._executor = executor
        self._queries: list[DelayedQuery] = []

    def __len__(self) -> int:
        return len(self._queries)

    @property
    def pending(self) -> tuple[DelayedQuery, ...]:
        return tuple(self._queries)

    def register(
        self,
        query: str,
        target: Role | str | AsyncConnection,
        handler: DelayedHandler | None = None,
    ) -> bool:
        if isinstance(target, AsyncConnection):
            resolved = target
        elif isinstance(target, str) and _role_name(target) in _ROLES:
            resolved = _ROLES[_role_name(target)]
        else:
            return False
        self._queries.append(DelayedQuery(query, resolved, handler))
        return True

    async def flush(self) -> int:
        """Run every queued entry once. Returns the number that succeeded."""
        queries, self._queries = self._queries, []
        succeeded = 0
        for delayed in queries:
            if await self._run(delayed):
                succeeded += 1
        return succeeded

    async def _run(self, delayed: DelayedQuery) -> bool:
        if isinstance(delayed.target, Role):
            link = self._links.get_link(delayed.target)
        else:
            link = delayed.target
        try:
            result = await self._executor.execute(delayed.query, link)
        except Exception as e:
            logger.error(
                f"Delayed query failed: {e}",
                extra={"query": delayed.query, "error_code": getattr(e, "code", None)},
            )
            return False
        if delayed.handler is not None:
            try:
                delayed.handler(result)
            except Exception:
                logger.error(
                    "Delayed query handler raised",
                    extra={"query": delayed.query}, exc_info=True,
                )
        return True

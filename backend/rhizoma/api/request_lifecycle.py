"""Request Lifecycle: flushes delayed queries once a response has been sent.

Invariants:
    - Flush runs after the wrapped app finishes sending, success or failure
    - Flush never raises into the server (DelayedQueryQueue suppresses errors)
    - Non-HTTP scopes (lifespan, websocket) pass through untouched

Design Decisions:
    - Pure ASGI middleware over BaseHTTPMiddleware: runs after the last body chunk,
      so the client never waits on a delayed query's result
    - Database looked up per request from the module singleton (patched in tests)
"""

import logging

from starlette.types import ASGIApp, Receive, Scope, Send

import rhizoma.infrastructure.database as db_module

logger = logging.getLogger(__name__)


class DelayedQueryFlushMiddleware:
    """Runs queued delayed queries at the end of every HTTP request."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        try:
            await self.app(scope, receive, send)
        finally:
            db = db_module.database
            if db is not None and db.delayed_queries:
                flushed = await db.flush_delayed_queries()
                logger.debug(f"Flushed {flushed} delayed queries after {scope['path']}")

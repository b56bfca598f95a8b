"""Rhizoma API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map RhizomaError → structured JSON responses
    - Database initialized on startup, delayed queries flushed and links closed on shutdown
    - Every HTTP request ends with a delayed-query flush

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Flush middleware added last so it wraps everything, error handlers included
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

import rhizoma.infrastructure.database as db_module
from rhizoma.api.error_handlers import register_error_handlers
from rhizoma.api.request_lifecycle import DelayedQueryFlushMiddleware
from rhizoma.api.routes import health
from rhizoma.config import get_settings
from rhizoma.infrastructure.database import init_database
from rhizoma.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_database(settings)
    logger.info("Rhizoma database layer started")
    yield
    db = db_module.database
    if db is not None:
        await db.flush_delayed_queries()
        await db.dispose()
    logger.info("Rhizoma database layer shutting down")


app = FastAPI(title="Rhizoma API", version="1.0.0", lifespan=lifespan)

register_error_handlers(app)

# Routes: explicit registration
app.include_router(health.router)

app.add_middleware(DelayedQueryFlushMiddleware)

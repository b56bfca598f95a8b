"""Structured Logging: JSON formatter, extra levels and the display handler.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (query, role, cache_key, query_count, error_code) surfaced when present
    - NOTICE (25) sits between INFO and WARNING; "OFF" silences everything
    - DisplayHandler forwards only records above NOTICE, and only after page setup

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - setup_logging called once on startup via lifespan
    - Page-setup state injected as a callable: the handler never reaches into settings
    - Display output waits for page setup: earlier writes would corrupt the response
"""

import logging
import json
from datetime import datetime, timezone
from typing import Callable

NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

_EXTRA_FIELDS = ("query", "role", "cache_key", "query_count", "error_code")


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


class DisplayHandler(logging.Handler):
    """Send user-facing log lines to a display sink once the page has started."""

    def __init__(
        self,
        sink: Callable[[str], None],
        page_setup_done: Callable[[], bool],
    ):
        super().__init__(level=NOTICE + 1)
        self._sink = sink
        self._page_setup_done = page_setup_done

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno <= NOTICE:
            return
        if not self._page_setup_done():
            return
        try:
            self._sink(self.format(record))
        except Exception:
            self.handleError(record)


def resolve_level(level: str) -> int:
    """Map a level name (including NOTICE and OFF) to its numeric value."""
    name = level.upper()
    if name == "OFF":
        return logging.CRITICAL + 1
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(
    level: str = "INFO",
    fmt: str = "json",
    display_sink: Callable[[str], None] | None = None,
    page_setup_done: Callable[[], bool] | None = None,
):
    """Configure logging for the application."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    logging.root.addHandler(handler)
    if display_sink is not None:
        display = DisplayHandler(
            display_sink, page_setup_done or (lambda: False),
        )
        display.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        logging.root.addHandler(display)
    logging.root.setLevel(resolve_level(level))

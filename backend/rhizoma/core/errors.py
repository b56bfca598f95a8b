"""Error Hierarchy: typed, categorized exceptions for all database failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - to_response() produces the REST envelope from public_message, never from debug_info
    - Offending query text and raw driver messages live in ErrorContext.debug_info (logs only)
    - A DatabaseError tied to a query answers clients with QUERY_FAILURE_MESSAGE
    - No credentials in any message

Design Decisions:
    - Single hierarchy with RhizomaError base: FastAPI global handler catches all
    - ConnectionLostError and ScriptExecutionError subclass DatabaseError so callers
      catching DatabaseError still see them; InstallationError stands alone so the
      front end can redirect to setup instead of a generic failure page
    - message keeps the driver text for logs and script summaries; public_message is
      what clients see
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone

QUERY_FAILURE_MESSAGE = "Database query failed."
SCRIPT_FAILURE_MESSAGE = "There were a number of issues running the database script."


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    CONFIGURATION = "configuration"
    DATABASE = "database"
    INSTALLATION = "installation"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    role: str | None = None
    debug_info: dict[str, Any] | None = None


class RhizomaError(Exception):
    """Base exception for all Rhizoma database errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        public_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.public_message = public_message or message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.public_message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
            }
        }


# ─── Configuration Errors ───────────────────────────────────────

class ConfigError(RhizomaError):
    """Connection configuration is missing or malformed."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFIG_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.field = field


# ─── Database Errors ────────────────────────────────────────────

class DatabaseError(RhizomaError):
    """Database operation failed."""
    def __init__(
        self,
        message: str,
        operation: str = "query",
        query: str | None = None,
        context: ErrorContext | None = None,
        code: str = "DATABASE_ERROR",
        http_status: int = 503,
        public_message: str | None = None,
    ):
        ctx = context or ErrorContext()
        if query is not None:
            ctx.debug_info = {**(ctx.debug_info or {}), "query": query}
            public_message = public_message or QUERY_FAILURE_MESSAGE
        super().__init__(
            message, code, ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, ctx, http_status, public_message,
        )
        self.operation = operation
        self.query = query


class ConnectionLostError(DatabaseError):
    """Driver reported a refused or dropped connection. Not retried here."""
    def __init__(self, query: str | None = None, context: ErrorContext | None = None):
        message = "Connection to database was lost."
        super().__init__(
            message, "query", query, context,
            code="DATABASE_CONNECTION_LOST", public_message=message,
        )


class ScriptExecutionError(DatabaseError):
    """One or more statements of a SQL script failed. Collected, not fail-fast."""
    def __init__(self, failures: list[str], context: ErrorContext | None = None):
        summary = "".join(f" {{{failure}}};" for failure in failures)
        super().__init__(
            f"There were a number of issues:{summary}", "script", None, context,
            code="SCRIPT_EXECUTION_FAILED", http_status=500,
            public_message=SCRIPT_FAILURE_MESSAGE,
        )
        self.failures = failures


# ─── Installation Errors ────────────────────────────────────────

class InstallationError(RhizomaError):
    """Schema is missing or unreachable: the site is not installed."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "NOT_INSTALLED", ErrorCategory.INSTALLATION,
            ErrorSeverity.CRITICAL, context, 503,
        )

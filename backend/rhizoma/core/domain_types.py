"""Domain Types: rich types that replace bare strings and positional arrays.

Invariants:
    - Role is the only key for link and endpoint lookup (no raw string matching)
    - ConnectionConfig is immutable once resolved; password never appears in repr
    - DelayedQuery is consumed exactly once by the queue flush
    - QueryResult is the raw driver outcome, never a cache-processed value

Design Decisions:
    - str Enum for Role: "read"/"write" strings from callers coerce with Role(value)
    - Frozen dataclasses over dicts: attribute access, hashable, no stray keys
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class Role(str, Enum):
    """Which link (and endpoint) a query uses."""
    READ = "read"
    WRITE = "write"
    READ_WRITE = "readwrite"


@dataclass(frozen=True)
class ConnectionConfig:
    """Concrete parameters for one endpoint."""
    driver: str
    database: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class QueryResult:
    """Materialized outcome of a single executed statement."""
    rows: list[dict[str, Any]] = field(default_factory=list)
    insert_id: int | None = None
    affected_rows: int = 0


# Handler invoked with the raw QueryResult of a delayed query
DelayedHandler = Callable[[QueryResult], Any]


@dataclass(frozen=True)
class DelayedQuery:
    """A statement queued for execution at the end of the unit of work.

    `target` is either a Role or an already-resolved link.
    """
    query: str
    target: Any
    handler: DelayedHandler | None = None

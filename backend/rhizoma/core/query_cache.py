"""Query Cache Keys: identity of a cached read result.

Invariants:
    - CacheKey = transform identity ("" if none) + single-row flag ("0"/"1") + raw query text
    - Same query with different transforms yields distinct keys (intentional, no normalization)
    - MISSING distinguishes "not cached" from a cached None (empty single-row read)

Design Decisions:
    - Transform identity is an explicit caller-supplied id; when omitted it falls back
      to the transform's qualified name, never its source text
"""

from typing import Any, Callable

# Fixed number of read results held by the query cache
QUERY_CACHE_SIZE = 50

# Sentinel for cache misses (None is a legitimate cached value)
MISSING: Any = object()

RowTransform = Callable[[dict[str, Any]], Any]


def transform_identity(
    transform: RowTransform | None, transform_id: str | None = None,
) -> str:
    """Stable identifier for a row transform. Empty string when there is none."""
    if transform is None:
        return ""
    if transform_id:
        return transform_id
    module = getattr(transform, "__module__", None) or ""
    name = getattr(transform, "__qualname__", None) or type(transform).__qualname__
    return f"{module}.{name}"


def build_cache_key(query: str, transform_id: str, single: bool) -> str:
    return f"{transform_id}{1 if single else 0}{query}"

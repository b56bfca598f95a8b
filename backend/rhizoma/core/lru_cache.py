"""LRU Cache: fixed-capacity key/value store evicting the least recently used entry.

Invariants:
    - Never holds more than `capacity` entries
    - get() and set() both refresh recency; contains() and remove() do not
    - Capacity must be a positive int (ValueError otherwise)

Design Decisions:
    - OrderedDict with move_to_end: O(1) recency bookkeeping, no third-party dependency
    - Not thread-safe: the owning Database runs on a single event loop
"""

from collections import OrderedDict
from typing import Any, Hashable


class LRUCache:
    """Bounded cache with least-recently-used eviction."""

    def __init__(self, capacity: int):
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
            raise ValueError(f"LRU capacity must be a positive int, got {capacity!r}")
        self.capacity = capacity
        self._data: OrderedDict[Hashable, Any] = OrderedDict()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the value cached under key, or default when absent."""
        if key not in self._data:
            return default
        self._data.move_to_end(key)
        return self._data[key]

    def set(self, key: Hashable, value: Any) -> None:
        """Store value under key, evicting the oldest entry when full."""
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = value
        while len(self._data) > self.capacity:
            self._data.popitem(last=False)

    def contains(self, key: Hashable) -> bool:
        return key in self._data

    def remove(self, key: Hashable) -> Any:
        """Remove key. Returns the removed value, or None if it was not cached."""
        return self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __getitem__(self, key: Hashable) -> Any:
        if key not in self._data:
            raise KeyError(key)
        return self.get(key)

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Hashable) -> None:
        if key not in self._data:
            raise KeyError(key)
        del self._data[key]

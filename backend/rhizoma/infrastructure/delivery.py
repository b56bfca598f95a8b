"""Dual Result Delivery: one helper giving every coroutine an optional completion callback.

Invariants:
    - Without callback=: the call returns the coroutine unchanged (caller awaits it)
    - With callback=: the coroutine runs as a Task and callback(error, result) fires once
    - The returned Task is still awaitable and re-raises the original error
    - A failing callback is logged, never propagated into the event loop

Design Decisions:
    - Decorator built once and applied to each public operation: no per-method
      duplication of the callback/awaitable paths
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Completion = Callable[[BaseException | None, Any], Any]


def deliver(awaitable: Awaitable, callback: Completion) -> asyncio.Future:
    """Schedule awaitable and report its outcome to callback(error, result)."""
    task = asyncio.ensure_future(awaitable)

    def _on_done(t: asyncio.Future) -> None:
        if t.cancelled():
            error, result = asyncio.CancelledError(), None
        else:
            error = t.exception()
            result = None if error is not None else t.result()
        try:
            callback(error, result)
        except Exception:
            logger.error("Completion callback raised", exc_info=True)

    task.add_done_callback(_on_done)
    return task


def supports_callback(func: Callable[..., Awaitable]) -> Callable[..., Awaitable]:
    """Let an async function be awaited directly or called with callback=."""

    @functools.wraps(func)
    def wrapper(*args, callback: Completion | None = None, **kwargs):
        coro = func(*args, **kwargs)
        if callback is None:
            return coro
        return deliver(coro, callback)

    return wrapper

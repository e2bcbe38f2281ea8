"""Running async code from synchronous click commands."""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` on a fresh event loop and return its result.

    Raises:
        RuntimeError: If called while an event loop is already running
        Any exception raised by the coroutine is propagated
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError("run_async() cannot be called from a running event loop")

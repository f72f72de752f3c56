from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Any, Coroutine, TypeVar

T = TypeVar("T")


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously.

    Uses :func:`asyncio.run` when no loop is running in this thread. When
    one is (a CI plugin host that is itself async, a test harness), the
    coroutine runs in a fresh loop on a worker thread and this thread
    blocks on the result.

    Raises:
        Any exception raised by *coro*.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(asyncio.run, coro)
        return future.result()

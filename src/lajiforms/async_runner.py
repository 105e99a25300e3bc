"""Run the async compiler from synchronous callers.

The CLI and tests call the async services through `run_async`. When no event
loop is running the coroutine gets one of its own; inside a running loop (a
notebook, an async test) it is executed on a single worker thread.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from lajiforms.exceptions import AsyncExecutionError, PackageError

if TYPE_CHECKING:
    from collections.abc import Coroutine


def _run_on_worker[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on a worker thread with a fresh loop.

    Raises:
        PackageError: Compiler errors, unchanged.
        AsyncExecutionError: Wrapping any other failure.

    Returns:
        T: The coroutine result.
    """
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="lajiforms-async") as executor:
        future = executor.submit(asyncio.run, coro)
        try:
            return future.result()
        except PackageError:
            raise
        except Exception as exc:
            raise AsyncExecutionError(result=exc) from exc


def run_async[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine whether or not an event loop is already running.

    Args:
        coro: The coroutine to run.

    Returns:
        The result of the coroutine.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    return _run_on_worker(coro)

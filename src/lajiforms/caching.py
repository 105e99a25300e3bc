"""Explicit memoization of collaborator lookups."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

from lajiforms import logger


class AsyncCache:
    """Results of one async lookup, keyed by its normalized arguments.

    Concurrent calls with the same arguments share one in-flight load. Only
    resolved values are stored, so a cache outlives the event loop that
    filled it. Failed lookups are not cached.
    """

    def __init__(self, name: str, loader: Callable[..., Awaitable[Any]]) -> None:
        """Initialize cache.

        Args:
            name (str): Name used in log events.
            loader (Callable[..., Awaitable[Any]]): Lookup to memoize.
        """
        self.name = name
        self._loader = loader
        self._entries: dict[tuple[Hashable, ...], Any] = {}
        self._pending: dict[tuple[Hashable, ...], asyncio.Task[Any]] = {}

    async def __call__(self, *args: Hashable) -> Any:
        """Return the cached result for `args`, loading it on first use."""
        if args in self._entries:
            return self._entries[args]
        task = self._pending.get(args)
        # A load started on another event loop cannot be awaited from this one.
        if task is None or task.get_loop() is not asyncio.get_running_loop():
            task = asyncio.ensure_future(self._load(args))
            self._pending[args] = task
        return await task

    async def _load(self, args: tuple[Hashable, ...]) -> Any:
        task = asyncio.current_task()
        try:
            value = await self._loader(*args)
            if self._pending.get(args) is task:
                self._entries[args] = value
            return value
        finally:
            if self._pending.get(args) is task:
                del self._pending[args]

    def __contains__(self, args: tuple[Hashable, ...]) -> bool:
        return args in self._entries

    def delete(self, *args: Hashable) -> None:
        """Forget the result for one argument tuple, including a load in flight."""
        self._entries.pop(args, None)
        self._pending.pop(args, None)

    def clear(self) -> None:
        """Forget all results."""
        self._entries.clear()
        self._pending.clear()


class HasCaches:
    """Mixin owning a set of `AsyncCache` instances flushed together."""

    def __init__(self) -> None:
        self._caches: list[AsyncCache] = []

    def memoize(self, name: str, loader: Callable[..., Awaitable[Any]]) -> AsyncCache:
        """Create a cache registered for `flush`."""
        cache = AsyncCache(name, loader)
        self._caches.append(cache)
        return cache

    def flush(self) -> None:
        """Clear every registered cache."""
        for cache in self._caches:
            cache.clear()
        logger.debug("Caches flushed", extra={"owner": type(self).__name__, "caches": len(self._caches)})

"""In-flight quest registry.

Owns the key -> task mapping that guarantees at most one outstanding fetch
per key. Each engine owns its own registry, so independent engines (one per
test, one per server render) never see each other's quests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from typing import Any

from pyquest.exceptions import QuestRegistryError

_logger = logging.getLogger(__name__)


class InflightRegistry:
    """Track the single in-flight task for each key.

    An entry removes itself when its task settles, whatever the outcome.
    Entries can also be dropped explicitly with :meth:`discard`; a later
    settlement of a dropped task never removes a newer entry for the key.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Future[Any]] = {}

    def register(self, key: str, task: asyncio.Future[Any]) -> asyncio.Future[Any]:
        """Store *task* under *key*.

        Callers must :meth:`peek` first; registering over an unsettled entry
        raises :class:`QuestRegistryError`.
        """
        existing = self._tasks.get(key)
        if existing is not None and not existing.done():
            raise QuestRegistryError(f"A quest is already in flight for key {key!r}", key=key)

        self._tasks[key] = task

        def _remove(done: asyncio.Future[Any]) -> None:
            if self._tasks.get(key) is done:
                del self._tasks[key]
                _logger.debug("In-flight entry removed key=%s", key)

        task.add_done_callback(_remove)
        return task

    def peek(self, key: str) -> asyncio.Future[Any] | None:
        """Return the in-flight task for *key* without waiting on it."""
        return self._tasks.get(key)

    def discard(self, key: str) -> asyncio.Future[Any] | None:
        """Forget the entry for *key* and return it. The task keeps running."""
        return self._tasks.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._tasks)

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tasks))

    async def wait(self, key: str) -> Any:
        """Wait for the in-flight task of *key*, if any, and return its result."""
        task = self._tasks.get(key)
        if task is None:
            return None
        return await asyncio.shield(task)

    async def wait_all(self) -> None:
        """Wait until no task is registered, including ones added while waiting."""
        while self._tasks:
            pending = list(self._tasks.values())
            await asyncio.gather(*(asyncio.shield(task) for task in pending), return_exceptions=True)
            # A settled task's removal callback runs on the next loop
            # iteration; yield so the registry reflects it before re-checking.
            await asyncio.sleep(0)

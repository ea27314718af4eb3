"""Quest engine: keyed fetch lifecycle, deduplication and optimistic updates."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from pyquest._inflight import InflightRegistry
from pyquest._redact import summarize_for_log
from pyquest.config import QuestConfig
from pyquest.exceptions import QuestConfigError, QuestLoopError
from pyquest.sequencer import OptimisticSequence, is_sequence
from pyquest.state.events import QuestCommand
from pyquest.state.record import ResourceRecord
from pyquest.state.store import DataStore, QuestStore

_logger = logging.getLogger(__name__)

#: Commits a value as the key's resolved data; returns ``None`` if stale.
Commit = Callable[[Any], ResourceRecord | None]
#: Reads the key's latest committed data.
DataAccessor = Callable[[], Any]
#: ``thunk(commit, get_current_data)``; both must be used in the same synchronous turn.
Thunk = Callable[[Commit, DataAccessor], Any]
#: Zero-argument callable returning an awaitable, a sequence of awaitables, a thunk or a value.
Fetcher = Callable[[], Any]


def _normalize_key(key: str) -> str:
    """Return the key every registry, generation and store lookup uses."""
    if not isinstance(key, str) or not key.strip():
        raise QuestConfigError(f"quest keys must be non-empty strings, got {key!r}")
    return key.strip()


class QuestEngine:
    """Manage the load/error/data lifecycle of keyed resources.

    Usage::

        engine = QuestEngine()
        task = engine.start_quest("posts", lambda: api.get_posts())
        record = await task

    Every write goes through the store as a :class:`QuestCommand`. Fetch
    failures are captured into the record's ``error`` and never raised to
    the caller.
    """

    def __init__(
        self,
        store: QuestStore | None = None,
        *,
        config: QuestConfig | None = None,
    ) -> None:
        self._store: QuestStore = store if store is not None else DataStore()
        self._config = config or QuestConfig()
        self._inflight = InflightRegistry()
        self._generations: dict[str, int] = {}

    @property
    def store(self) -> QuestStore:
        return self._store

    @property
    def config(self) -> QuestConfig:
        return self._config

    @property
    def inflight(self) -> InflightRegistry:
        return self._inflight

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_record(self, key: str) -> ResourceRecord:
        """Return the current record for *key* (the default record if never written)."""
        return self._store.get_record(_normalize_key(key))

    def generation(self, key: str) -> int:
        return self._generations.get(_normalize_key(key), 0)

    def pending(self, key: str) -> asyncio.Future[Any] | None:
        """Return the in-flight task for *key*, if any, without waiting on it."""
        return self._inflight.peek(_normalize_key(key))

    async def wait(self, key: str) -> ResourceRecord:
        """Wait for the in-flight quest of *key* (if any) and return the record."""
        await self._inflight.wait(_normalize_key(key))
        return self.get_record(key)

    async def settle_all(self) -> None:
        """Wait until no quest is in flight.

        A server renderer calls this between passes so that its final pass
        sees settled records.
        """
        await self._inflight.wait_all()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def start_quest(self, key: str, fetcher: Fetcher) -> asyncio.Future[ResourceRecord] | None:
        """Start a quest for *key* unless one is already in flight.

        Returns the in-flight task (awaiting it yields the settled record),
        the task already registered for *key*, or ``None`` when the quest
        settled synchronously.
        """
        key = _normalize_key(key)
        existing = self._inflight.peek(key)
        if existing is not None and not existing.done():
            _logger.debug("Quest already in flight key=%s; reusing it", key)
            return existing

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            raise QuestLoopError("start_quest() requires a running event loop") from None

        generation = self._bump(key)
        self._commit(QuestCommand.start(key, generation=generation))
        _logger.debug("Quest started key=%s generation=%d", key, generation)

        try:
            result = fetcher()
        except Exception as exc:
            _logger.debug("Fetcher raised for key=%s", key, exc_info=True)
            self._commit(QuestCommand.reject(key, exc, generation=generation))
            return None

        return self._handle_result(key, result, generation)

    async def run_quest(self, key: str, fetcher: Fetcher) -> ResourceRecord:
        """Start (or join) a quest for *key* and return the settled record."""
        task = self.start_quest(key, fetcher)
        if task is not None:
            await task
        return self.get_record(key)

    def resolve_quest(self, key: str, value: Any) -> ResourceRecord:
        """Commit *value* as the resolved data for *key* without fetching.

        Ends any load in progress. With the stale guard enabled, the
        settlement of a quest still in flight for *key* is ignored.
        """
        key = _normalize_key(key)
        generation = self._bump(key)
        if self._config.stale_guard and self._inflight.discard(key) is not None:
            _logger.debug("Superseded in-flight quest key=%s", key)
        record = self._commit(QuestCommand.resolve(key, value, generation=generation))
        assert record is not None  # noqa: S101
        return record

    def invalidate(self, key: str) -> ResourceRecord:
        """Stop caring about any outstanding settlement for *key*.

        The fetch keeps running, but its outcome will not be committed.
        Loading is cleared and the next :meth:`start_quest` starts afresh.
        """
        key = _normalize_key(key)
        generation = self._bump(key)
        self._inflight.discard(key)
        _logger.debug("Invalidated key=%s generation=%d", key, generation)
        return self._store.dispatch(QuestCommand.settle(key, generation=generation))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _bump(self, key: str) -> int:
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        return generation

    def _is_current(self, key: str, generation: int) -> bool:
        if not self._config.stale_guard:
            return True
        return self._generations.get(key, 0) == generation

    def _commit(self, command: QuestCommand) -> ResourceRecord | None:
        if not self._is_current(command.key, command.generation):
            _logger.debug(
                "Ignoring stale %s for key=%s (generation %d, current %d)",
                command.kind,
                command.key,
                command.generation,
                self.generation(command.key),
            )
            return None

        record = self._store.dispatch(command)
        if self._config.trace_enabled:
            _logger.debug(
                "Committed %s key=%s data=%s error=%s",
                command.kind,
                command.key,
                summarize_for_log(record.data, max_string=self._config.trace_max_string),
                summarize_for_log(record.error, max_string=self._config.trace_max_string),
            )
        return record

    def _handle_result(self, key: str, result: Any, generation: int) -> asyncio.Future[ResourceRecord] | None:
        if inspect.isawaitable(result):
            return self._spawn(key, self._settle_single(key, result, generation))

        if is_sequence(result):
            snapshot = self.get_record(key)
            return self._spawn(key, self._settle_sequence(key, result, snapshot, generation))

        if callable(result):
            return self._run_thunk(key, result, generation)

        if result is None:
            self._commit(QuestCommand.settle(key, generation=generation))
        else:
            self._commit(QuestCommand.resolve(key, result, generation=generation))
        return None

    def _run_thunk(self, key: str, thunk: Thunk, generation: int) -> asyncio.Future[ResourceRecord] | None:
        def commit(value: Any) -> ResourceRecord | None:
            return self._commit(QuestCommand.resolve(key, value, generation=generation))

        def get_current_data() -> Any:
            return self._store.get_record(key).data

        try:
            result = thunk(commit, get_current_data)
        except Exception as exc:
            _logger.debug("Thunk raised for key=%s", key, exc_info=True)
            self._commit(QuestCommand.reject(key, exc, generation=generation))
            return None

        return self._handle_result(key, result, generation)

    def _spawn(self, key: str, coro: Awaitable[ResourceRecord]) -> asyncio.Future[ResourceRecord]:
        task = asyncio.ensure_future(coro)
        self._inflight.register(key, task)
        return task

    async def _settle_single(self, key: str, awaitable: Awaitable[Any], generation: int) -> ResourceRecord:
        try:
            value = await awaitable
        except Exception as exc:
            _logger.debug("Quest failed key=%s: %r", key, exc)
            self._commit(QuestCommand.reject(key, exc, generation=generation))
        else:
            _logger.debug("Quest resolved key=%s", key)
            self._commit(QuestCommand.resolve(key, value, generation=generation))
        return self.get_record(key)

    async def _settle_sequence(
        self,
        key: str,
        steps: Sequence[Any],
        snapshot: ResourceRecord,
        generation: int,
    ) -> ResourceRecord:
        def apply(value: Any) -> bool:
            return self._commit(QuestCommand.resolve(key, value, generation=generation)) is not None

        def rollback(previous: ResourceRecord, error: BaseException) -> None:
            self._commit(
                QuestCommand.rollback(
                    key,
                    data=previous.data,
                    completed=previous.completed,
                    error=error,
                    generation=generation,
                )
            )

        sequence = OptimisticSequence(key, steps, snapshot=snapshot, apply=apply, rollback=rollback)
        if await sequence.run():
            _logger.debug("Sequence confirmed key=%s steps=%d", key, len(steps))
        return self.get_record(key)

"""Deterministic in-memory data store.

This is the only component allowed to hold resource records. Records are
replaced, never mutated, so any record handed to a reader stays a consistent
snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Protocol

from pyquest.state.events import QuestCommand
from pyquest.state.policy import reduce_record
from pyquest.state.record import DEFAULT_RECORD, ResourceRecord

_logger = logging.getLogger(__name__)

Listener = Callable[[QuestCommand, ResourceRecord], None]


class QuestStore(Protocol):
    """What the engine needs from a store."""

    def get_record(self, key: str) -> ResourceRecord: ...

    def dispatch(self, command: QuestCommand) -> ResourceRecord: ...


class DataStore:
    """In-memory keyed record store.

    Given the same sequence of :class:`QuestCommand`s, it produces the same
    records. Listeners are called synchronously after each dispatch.
    """

    def __init__(self, initial: Mapping[str, ResourceRecord] | None = None) -> None:
        self._records: dict[str, ResourceRecord] = dict(initial or {})
        self._listeners: list[Listener] = []

    def get_record(self, key: str) -> ResourceRecord:
        """Return the record for *key*, or the default record if it was never written."""
        return self._records.get(key, DEFAULT_RECORD)

    def snapshot(self) -> dict[str, ResourceRecord]:
        """Return the ``{key: record}`` mapping of every written key."""
        return dict(self._records)

    def dispatch(self, command: QuestCommand) -> ResourceRecord:
        """Apply a command and notify listeners."""
        record = reduce_record(self.get_record(command.key), command)
        self._records[command.key] = record
        for listener in list(self._listeners):
            try:
                listener(command, record)
            except Exception:
                _logger.warning("Store listener failed for key=%s", command.key, exc_info=True)
        return record

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def reset(self) -> None:
        """Forget every record. Listeners stay subscribed."""
        self._records.clear()

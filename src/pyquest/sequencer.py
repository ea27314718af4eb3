"""Optimistic update sequencing.

A sequence is an ordered list of update-producing awaitables for one key,
typically an immediate optimistic value followed by the server-confirmed
one. Results are applied strictly in declared order; the first failure
restores the record to its pre-sequence data and stops the sequence.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Sequence
from typing import Any

from pyquest.state.record import ResourceRecord

_logger = logging.getLogger(__name__)

#: ``apply(value) -> bool``; ``False`` means the sequence went stale.
ApplyStep = Callable[[Any], bool]
#: ``rollback(snapshot, error)``
Rollback = Callable[[ResourceRecord, BaseException], None]


def is_sequence(value: Any) -> bool:
    """True for a list or tuple holding at least one awaitable step."""
    return isinstance(value, (list, tuple)) and any(inspect.isawaitable(item) for item in value)


def _as_future(step: Any) -> asyncio.Future[Any]:
    if inspect.isawaitable(step):
        return asyncio.ensure_future(step)
    future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
    future.set_result(step)
    return future


def _drain(future: asyncio.Future[Any]) -> None:
    # Outcomes of abandoned steps are read so they are never reported as unretrieved.
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        _logger.debug("Abandoned sequence step failed: %r", exc)


class OptimisticSequence:
    """Apply an ordered sequence of updates to one key, all or nothing."""

    def __init__(
        self,
        key: str,
        steps: Sequence[Any],
        *,
        snapshot: ResourceRecord,
        apply: ApplyStep,
        rollback: Rollback,
    ) -> None:
        self.key = key
        self._steps = list(steps)
        self._snapshot = snapshot
        self._apply = apply
        self._rollback = rollback
        self.applied = 0

    async def run(self) -> bool:
        """Run the sequence. Returns ``True`` when every step was applied.

        All steps are scheduled up front so they make progress concurrently,
        but each one is awaited in its declared slot: a step that settles
        early is buffered until every earlier step has been applied.
        """
        futures = [_as_future(step) for step in self._steps]

        for index, future in enumerate(futures):
            try:
                value = await future
            except Exception as exc:
                _logger.debug(
                    "Sequence step %d/%d failed for key=%s; rolling back %d applied step(s)",
                    index + 1,
                    len(futures),
                    self.key,
                    self.applied,
                )
                self._abandon(futures[index + 1 :])
                self.applied = 0
                self._rollback(self._snapshot, exc)
                return False

            if not self._apply(value):
                _logger.debug("Sequence for key=%s went stale at step %d", self.key, index + 1)
                self._abandon(futures[index + 1 :])
                return False
            self.applied += 1

        return True

    @staticmethod
    def _abandon(futures: Sequence[asyncio.Future[Any]]) -> None:
        for future in futures:
            future.add_done_callback(_drain)

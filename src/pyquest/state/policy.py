"""Deterministic record transitions.

``reduce_record`` is a pure function: the same record and command always
produce the same next record. It knows nothing about fetchers, promises or
generations; the engine decides which commands to issue.
"""

from __future__ import annotations

from pyquest.state.events import CommandKind, QuestCommand
from pyquest.state.record import ResourceRecord


def has_data(record: ResourceRecord) -> bool:
    return record.data is not None


def has_error(record: ResourceRecord) -> bool:
    return record.error is not None


def reduce_record(record: ResourceRecord, command: QuestCommand) -> ResourceRecord:
    """Return the record that results from applying *command*.

    - START: loading; error from a previous attempt stays until settlement.
    - RESOLVE: data committed, completed, error cleared.
    - REJECT: error recorded, data and completed untouched.
    - ROLLBACK: data and completed restored from the snapshot, error recorded.
    - SETTLE: load ended without new data.
    """
    kind = command.kind
    if kind == CommandKind.START:
        return record.model_copy(update={"loading": True})
    if kind == CommandKind.RESOLVE:
        return ResourceRecord(loading=False, completed=True, error=None, data=command.value)
    if kind == CommandKind.REJECT:
        return record.model_copy(update={"loading": False, "error": command.error})
    if kind == CommandKind.ROLLBACK:
        completed = record.completed if command.completed is None else command.completed
        return ResourceRecord(loading=False, completed=completed, error=command.error, data=command.value)
    if kind == CommandKind.SETTLE:
        return record.model_copy(update={"loading": False})
    raise ValueError(f"Unknown command kind: {kind!r}")

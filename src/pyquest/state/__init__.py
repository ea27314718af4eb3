"""State/store layer.

This package holds the per-key resource records and the only code allowed to
change them: quest commands are reduced into records here, synchronously, and
subscribers are notified after every change.
"""

from pyquest.state.events import CommandKind, QuestCommand
from pyquest.state.policy import has_data, has_error, reduce_record
from pyquest.state.record import DEFAULT_RECORD, ResourceRecord
from pyquest.state.store import DataStore, QuestStore

__all__ = [
    "DEFAULT_RECORD",
    "CommandKind",
    "DataStore",
    "QuestCommand",
    "QuestStore",
    "ResourceRecord",
    "has_data",
    "has_error",
    "reduce_record",
]

"""pyquest - Async remote-data quests with deduplication and optimistic updates."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyquest")
except PackageNotFoundError:
    __version__ = "0+local"
from pyquest.binding import QuestBinding, QuestOptions
from pyquest.config import QuestConfig
from pyquest.engine import QuestEngine
from pyquest.exceptions import (
    QuestConfigError,
    QuestError,
    QuestLoopError,
    QuestRegistryError,
)
from pyquest.resolver import Resolver
from pyquest.state import (
    DEFAULT_RECORD,
    CommandKind,
    DataStore,
    QuestCommand,
    QuestStore,
    ResourceRecord,
)

__all__ = [
    "__version__",
    "DEFAULT_RECORD",
    "CommandKind",
    "DataStore",
    "QuestBinding",
    "QuestCommand",
    "QuestConfig",
    "QuestConfigError",
    "QuestEngine",
    "QuestError",
    "QuestLoopError",
    "QuestOptions",
    "QuestRegistryError",
    "QuestStore",
    "Resolver",
    "ResourceRecord",
]

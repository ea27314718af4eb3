"""Engine configuration for pyquest."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class QuestConfig:
    """Engine configuration.

    Parameters
    ----------
    stale_guard : bool
        Ignore settlements whose generation is no longer current for the
        key. A generation is bumped whenever a quest starts, a value is
        resolved directly, or the key is invalidated. Set to ``False`` for
        last-write-wins behaviour.
    trace_enabled : bool
        Log a summary of every committed payload at DEBUG level.
    trace_max_string : int
        Strings longer than this are truncated in traced payloads.
    """

    stale_guard: bool = True
    trace_enabled: bool = False
    trace_max_string: int = 256

    @classmethod
    def from_env(cls, **overrides: Any) -> QuestConfig:
        """Create configuration from ``PYQUEST_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        if "stale_guard" not in overrides:
            config_kwargs["stale_guard"] = _env_bool(env.get("PYQUEST_STALE_GUARD"), True)

        if "trace_enabled" not in overrides:
            config_kwargs["trace_enabled"] = _env_bool(env.get("PYQUEST_TRACE_ENABLED"), False)

        max_string_env = env.get("PYQUEST_TRACE_MAX_STRING")
        if max_string_env is not None and "trace_max_string" not in overrides:
            config_kwargs["trace_max_string"] = int(max_string_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)

"""Helpers for compact debug logging of committed payloads.

Resource data is opaque and may be arbitrarily large. This module turns a
payload into a bounded, log-friendly summary before it is emitted in DEBUG
traces.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_MAX_ITEMS = 20


def summarize_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a bounded copy of *value* suitable for debug logs."""
    if _depth > 6:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, BaseException):
        return f"<{type(value).__name__}: {summarize_for_log(str(value), max_string=max_string)}>"

    if isinstance(value, Mapping):
        summary: dict[str, Any] = {}
        for index, (k, v) in enumerate(value.items()):
            if index >= _MAX_ITEMS:
                summary["…"] = f"<{len(value) - _MAX_ITEMS} more>"
                break
            summary[str(k)] = summarize_for_log(v, max_string=max_string, _depth=_depth + 1)
        return summary

    if isinstance(value, Sequence):
        items = [summarize_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value[:_MAX_ITEMS]]
        if len(value) > _MAX_ITEMS:
            items.append(f"<{len(value) - _MAX_ITEMS} more>")
        return items

    # Fallback: represent unknown objects without dumping internals.
    return f"<{type(value).__name__}>"

"""Per-key resource record."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ResourceRecord(BaseModel):
    """Stored lifecycle state of one keyed resource.

    Parameters
    ----------
    loading : bool
        A fetch is currently in flight.
    completed : bool
        At least one fetch has ever settled successfully. This is a
        historical flag; whether data is present is tested with
        ``data is not None``.
    error : BaseException or None
        Last fetch/mutation failure, cleared on the next successful
        settlement.
    data : Any
        Last successfully resolved payload; ``None`` means "no data yet".
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    loading: bool = False
    completed: bool = False
    error: BaseException | None = None
    data: Any = None


#: Canonical record for a key that has never been written.
DEFAULT_RECORD = ResourceRecord()

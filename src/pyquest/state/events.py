"""Quest commands.

Every change to a resource record is expressed as one of these commands.
Only the state/store layer is allowed to reduce them into records.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommandKind(StrEnum):
    START = "start"
    RESOLVE = "resolve"
    REJECT = "reject"
    ROLLBACK = "rollback"
    SETTLE = "settle"


class QuestCommand(BaseModel):
    """A synchronous write issued by the engine to the store."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str = Field(..., description="Resource key")
    kind: CommandKind
    value: Any = Field(default=None, description="Resolved data (RESOLVE) or snapshot data (ROLLBACK)")
    error: BaseException | None = Field(default=None, description="Failure reason (REJECT, ROLLBACK)")
    completed: bool | None = Field(default=None, description="Snapshot completed flag (ROLLBACK)")
    generation: int = Field(default=0, description="Key generation the command was issued under")

    @field_validator("key")
    @classmethod
    def _require_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("key must be non-empty")
        return value

    @classmethod
    def start(cls, key: str, *, generation: int = 0) -> QuestCommand:
        return cls(key=key, kind=CommandKind.START, generation=generation)

    @classmethod
    def resolve(cls, key: str, value: Any, *, generation: int = 0) -> QuestCommand:
        return cls(key=key, kind=CommandKind.RESOLVE, value=value, generation=generation)

    @classmethod
    def reject(cls, key: str, error: BaseException, *, generation: int = 0) -> QuestCommand:
        return cls(key=key, kind=CommandKind.REJECT, error=error, generation=generation)

    @classmethod
    def rollback(
        cls,
        key: str,
        *,
        data: Any,
        completed: bool,
        error: BaseException,
        generation: int = 0,
    ) -> QuestCommand:
        return cls(
            key=key,
            kind=CommandKind.ROLLBACK,
            value=data,
            completed=completed,
            error=error,
            generation=generation,
        )

    @classmethod
    def settle(cls, key: str, *, generation: int = 0) -> QuestCommand:
        return cls(key=key, kind=CommandKind.SETTLE, generation=generation)

"""Value types exchanged between the engine and its collaborators.

Every model here is frozen: the engine owns the live state and hands out
snapshots, never mutable references.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from timewsync.domain.tags import dedupe_tags
from timewsync.domain.types import CommandKind, EngineStatus, ErrorKind


class TimerState(BaseModel):
    """Snapshot of the external tool's timer.

    Attributes:
        active: Whether an interval is currently open.
        tags: Tags of the open interval, in the order the tool reports them.
        started_at: Start of the open interval (UTC). Present iff ``active``.
    """

    model_config = {"frozen": True}

    active: bool = False
    tags: tuple[str, ...] = ()
    started_at: datetime | None = None

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return dedupe_tags(value)

    @field_validator("started_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @model_validator(mode="after")
    def _start_matches_active(self) -> Self:
        if self.active and self.started_at is None:
            msg = "an active timer requires started_at"
            raise ValueError(msg)
        if not self.active and self.started_at is not None:
            msg = "an inactive timer cannot have started_at"
            raise ValueError(msg)
        return self

    @classmethod
    def inactive(cls) -> TimerState:
        return cls(active=False, tags=(), started_at=None)

    def elapsed(self, now: datetime | None = None) -> timedelta:
        """Time since ``started_at``; zero when inactive. Derived at read time."""
        if not self.active or self.started_at is None:
            return timedelta(0)
        current = now or datetime.now(UTC)
        return max(current - self.started_at, timedelta(0))


class TagHistoryEntry(BaseModel):
    """One remembered tag set.

    ``key`` is the canonical (sorted, joined) form used for deduplication;
    ``raw_tags`` keeps the order the user last entered.
    """

    model_config = {"frozen": True}

    key: str
    raw_tags: tuple[str, ...]
    last_used_at: datetime


class CommandRequest(BaseModel):
    """A caller's request for one mutating operation. Consumed exactly once."""

    model_config = {"frozen": True}

    kind: CommandKind
    payload_tags: tuple[str, ...] | None = None


class CommandError(BaseModel):
    """Structured, user-facing error within a CommandOutcome."""

    model_config = {"frozen": True}

    kind: ErrorKind
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class CommandOutcome(BaseModel):
    """Return value of every command.

    Attributes:
        success: Whether the command was applied.
        op: Name of the operation (e.g. ``"start_timer"``).
        resulting_state: State observed after the command (or the last
            known state when the command was rejected).
        error: Structured error if ``success`` is False.
    """

    model_config = {"frozen": True}

    success: bool
    op: str
    resulting_state: TimerState | None = None
    error: CommandError | None = None


class EngineSnapshot(BaseModel):
    """Immutable view of the engine's state machine for queries."""

    model_config = {"frozen": True}

    status: EngineStatus = EngineStatus.UNINITIALIZED
    state: TimerState | None = None
    reason: CommandError | None = None

    @property
    def is_stale(self) -> bool:
        """True when ``state`` is last-known data kept through a failure."""
        return self.status == EngineStatus.DEGRADED

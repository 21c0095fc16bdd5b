"""Events fanned out to subscribers and plugin hooks."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel

from timewsync.domain.state import CommandError, TagHistoryEntry, TimerState
from timewsync.domain.types import EventKind


class Event(BaseModel):
    """A single notification.

    Only the payload matching ``kind`` is populated.
    """

    model_config = {"frozen": True}

    kind: EventKind
    state: TimerState | None = None
    history: tuple[TagHistoryEntry, ...] = ()
    error: CommandError | None = None

    @classmethod
    def state_changed(cls, state: TimerState) -> Event:
        return cls(kind=EventKind.STATE_CHANGED, state=state)

    @classmethod
    def tags_history_updated(cls, entries: Sequence[TagHistoryEntry]) -> Event:
        return cls(kind=EventKind.TAGS_HISTORY_UPDATED, history=tuple(entries))

    @classmethod
    def command_failed(cls, error: CommandError) -> Event:
        return cls(kind=EventKind.COMMAND_FAILED, error=error)

"""Classification enums for engine status, commands, events and errors."""

from __future__ import annotations

from enum import StrEnum


class EngineStatus(StrEnum):
    """States of the sync engine's state machine."""

    UNINITIALIZED = "uninitialized"
    SYNCED = "synced"
    DEGRADED = "degraded"


class CommandKind(StrEnum):
    """The four mutating operations callers may request."""

    START_TIMER = "start_timer"
    STOP_TIMER = "stop_timer"
    EDIT_TAGS = "edit_tags"
    START_OR_STOP = "start_or_stop"


class EventKind(StrEnum):
    """Notifications fanned out by the event publisher."""

    STATE_CHANGED = "state_changed"
    TAGS_HISTORY_UPDATED = "tags_history_updated"
    COMMAND_FAILED = "command_failed"


class ErrorKind(StrEnum):
    """User-facing error codes carried in a CommandOutcome."""

    ALREADY_ACTIVE = "already_active"
    NOT_ACTIVE = "not_active"
    INVALID_TAG = "invalid_tag"
    EXTERNAL_TOOL_UNAVAILABLE = "external_tool_unavailable"
    COMMAND_FAILED = "command_failed"
    SHUTTING_DOWN = "shutting_down"

"""Built-in observability plugin: log every event through structlog."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy
import structlog

if TYPE_CHECKING:
    from timewsync.domain.state import CommandError, TagHistoryEntry, TimerState

hookimpl = pluggy.HookimplMarker("timewsync")


class LoggingPlugin:
    """Emit one structured log line per timer event."""

    def __init__(self) -> None:
        self._log = structlog.get_logger("timewsync.events")

    @hookimpl
    def on_state_changed(self, state: TimerState) -> None:
        self._log.info(
            "timer.state_changed",
            active=state.active,
            tags=list(state.tags),
            started_at=state.started_at.isoformat() if state.started_at else None,
        )

    @hookimpl
    def on_tags_history_updated(self, history: tuple[TagHistoryEntry, ...]) -> None:
        latest = list(history[0].raw_tags) if history else []
        self._log.debug("timer.history_updated", size=len(history), latest=latest)

    @hookimpl
    def on_command_failed(self, error: CommandError) -> None:
        self._log.warning("timer.command_failed", kind=str(error.kind), message=error.message)

"""Pluggy hook specifications for timer events.

Hooks receive the same frozen snapshots subscribers see. They are
dispatched off the engine's worker thread unless the publisher runs in
sync mode.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from timewsync.domain.state import CommandError, TagHistoryEntry, TimerState

hookspec = pluggy.HookspecMarker("timewsync")


class TimewsyncHookSpec:
    """Hook specifications for the timewsync plugin system."""

    @hookspec
    def on_state_changed(self, state: TimerState) -> None:
        """Called when a poll observes a different timer state."""

    @hookspec
    def on_tags_history_updated(self, history: tuple[TagHistoryEntry, ...]) -> None:
        """Called after a command records a tag set. Most recent first."""

    @hookspec
    def on_command_failed(self, error: CommandError) -> None:
        """Called when a command returns an unsuccessful outcome."""

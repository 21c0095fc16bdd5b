"""Rich/JSON output helpers.

The CLI renders outcomes, snapshots and events for humans (Rich output,
colors) or machines (--json). Human output is plain text when Rich
detects no terminal, which is the case inside Click's CliRunner.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from rich.text import Text

from timewsync.domain.types import EngineStatus, EventKind
from timewsync.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from timewsync.domain.events import Event
    from timewsync.domain.state import CommandOutcome, EngineSnapshot, TimerState


@dataclass(frozen=True)
class OutputSettings:
    """How results should be rendered."""

    json_output: bool = False
    verbose: bool = False


def format_duration(delta: timedelta) -> str:
    """Render a duration as ``H:MM:SS``.

    Examples:
        >>> format_duration(timedelta(hours=1, minutes=2, seconds=3))
        '1:02:03'
    """
    total = int(delta.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def _field(console: Console, key: str, value: Text | str) -> None:
    console.print(Text(f"  {key}: ", style="tw.key"), value, sep="", end="")
    console.print()


def _render_state(console: Console, state: TimerState, now: datetime | None) -> None:
    if not state.active:
        _field(console, "active", Text("no", style="tw.idle"))
        return
    _field(console, "active", Text("yes", style="tw.active"))
    tags = Text(", ".join(state.tags) or "(none)", style="tw.tag")
    _field(console, "tags", tags)
    assert state.started_at is not None
    _field(console, "started", state.started_at.isoformat())
    _field(console, "elapsed", format_duration(state.elapsed(now)))


def format_outcome(
    outcome: CommandOutcome,
    *,
    settings: OutputSettings | None = None,
    now: datetime | None = None,
) -> str:
    """Format a CommandOutcome for display."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return outcome.model_dump_json(indent=2)

    console = create_console()
    if outcome.success:
        console.print(Text("OK", style="tw.ok"), Text(f"  {outcome.op}", style="tw.op"), sep="")
        if outcome.resulting_state is not None:
            _render_state(console, outcome.resulting_state, now)
    else:
        message = outcome.error.message if outcome.error else "Unknown error"
        kind = f" ({outcome.error.kind})" if outcome.error else ""
        console.print(
            Text("ERROR", style="tw.error"),
            Text(f"  {outcome.op}", style="tw.op"),
            Text(f": {message}{kind}"),
            sep="",
        )
        if settings.verbose and outcome.error and outcome.error.detail:
            for key, value in outcome.error.detail.items():
                _field(console, key, str(value))
    return get_output(console).rstrip("\n")


def format_snapshot(
    snapshot: EngineSnapshot,
    *,
    settings: OutputSettings | None = None,
    now: datetime | None = None,
) -> str:
    """Format the engine's current view (status plus last known state)."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return snapshot.model_dump_json(indent=2)

    console = create_console()
    style = "tw.stale" if snapshot.status == EngineStatus.DEGRADED else "tw.ok"
    status = Text(str(snapshot.status), style=style)
    console.print(Text("status: ", style="tw.key"), status, sep="")
    if snapshot.state is not None:
        _render_state(console, snapshot.state, now)
    if snapshot.reason is not None:
        _field(console, "reason", Text(snapshot.reason.message, style="tw.warning"))
    return get_output(console).rstrip("\n")


def format_event(event: Event, *, settings: OutputSettings | None = None) -> str:
    """One line per event (or one JSON object per line)."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return event.model_dump_json()

    console = create_console()
    label = Text(f"[{event.kind}] ", style="tw.op")
    if event.kind == EventKind.STATE_CHANGED and event.state is not None:
        if event.state.active:
            body = Text("tracking " + " ".join(event.state.tags), style="tw.active")
        else:
            body = Text("idle", style="tw.idle")
    elif event.kind == EventKind.TAGS_HISTORY_UPDATED:
        latest = " ".join(event.history[0].raw_tags) if event.history else ""
        body = Text(f"{len(event.history)} tag sets, latest: {latest}")
    else:
        message = event.error.message if event.error else "Unknown error"
        body = Text(message, style="tw.error")
    console.print(label, body, sep="")
    return get_output(console).rstrip("\n")

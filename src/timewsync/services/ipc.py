"""Textual command contract for inbound transports (IPC, global shortcuts).

A transport hands over one line of text; the first word names the
operation and the rest is whitespace-delimited into tags::

    startOrStop
    startTimer work client-a
    stopTimer
    editTags review

snake_case names and the short aliases ``toggle``, ``start``, ``stop``
and ``retag`` are accepted too. The transport itself lives outside this
package.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from timewsync.domain.state import CommandOutcome, CommandRequest
from timewsync.domain.tags import split_tags
from timewsync.domain.types import CommandKind

if TYPE_CHECKING:
    from timewsync.services.engine import SyncEngine

_COMMAND_NAMES: dict[str, CommandKind] = {
    "startorstop": CommandKind.START_OR_STOP,
    "start_or_stop": CommandKind.START_OR_STOP,
    "toggle": CommandKind.START_OR_STOP,
    "starttimer": CommandKind.START_TIMER,
    "start_timer": CommandKind.START_TIMER,
    "start": CommandKind.START_TIMER,
    "stoptimer": CommandKind.STOP_TIMER,
    "stop_timer": CommandKind.STOP_TIMER,
    "stop": CommandKind.STOP_TIMER,
    "edittags": CommandKind.EDIT_TAGS,
    "edit_tags": CommandKind.EDIT_TAGS,
    "retag": CommandKind.EDIT_TAGS,
}

_TAKES_TAGS = {CommandKind.START_TIMER, CommandKind.EDIT_TAGS}


def parse_command(text: str) -> CommandRequest:
    """Turn one line of command text into a CommandRequest.

    Raises:
        ValueError: The line is empty, names an unknown command, or passes
            arguments to a command that takes none.

    Examples:
        >>> parse_command("startTimer work review").payload_tags
        ('work', 'review')
        >>> parse_command("toggle").kind
        <CommandKind.START_OR_STOP: 'start_or_stop'>
    """
    parts = text.split(maxsplit=1)
    if not parts:
        msg = "empty command"
        raise ValueError(msg)
    name = parts[0]
    rest = parts[1] if len(parts) > 1 else ""

    kind = _COMMAND_NAMES.get(name.lower())
    if kind is None:
        msg = f"unknown command {name!r}"
        raise ValueError(msg)

    tags = split_tags(rest)
    if kind not in _TAKES_TAGS:
        if tags:
            msg = f"{name} takes no arguments"
            raise ValueError(msg)
        return CommandRequest(kind=kind)
    return CommandRequest(kind=kind, payload_tags=tags)


def dispatch(engine: SyncEngine, text: str) -> CommandOutcome:
    """Parse *text* and run it against *engine*."""
    return engine.request(parse_command(text))

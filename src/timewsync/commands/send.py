"""Command: run one line of the textual command contract."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from timewsync.commands._base import TimewCommand

if TYPE_CHECKING:
    from timewsync.commands._context import AppContext


@click.command(
    cls=TimewCommand,
    examples="""\
  timewsync send startOrStop
  timewsync send startTimer work client-a
  timewsync send editTags review
  timewsync send stopTimer""",
)
@click.argument("words", nargs=-1, required=True)
@click.pass_obj
def send(app: AppContext, words: tuple[str, ...]) -> None:
    """Dispatch a textual command, as an IPC handler would."""
    from timewsync.services.ipc import dispatch, parse_command

    text = " ".join(words)
    try:
        parse_command(text)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="WORDS") from exc
    app.emit(dispatch(app.engine, text))

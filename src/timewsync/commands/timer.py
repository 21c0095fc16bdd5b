"""Commands: query and control the tracked timer."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from timewsync.commands._base import TimewCommand

if TYPE_CHECKING:
    from timewsync.commands._context import AppContext


@click.command(
    cls=TimewCommand,
    examples="""\
  timewsync status
  timewsync --json status""",
)
@click.pass_obj
def status(app: AppContext) -> None:
    """Poll the external tool once and show the timer state."""
    app.emit_snapshot(app.engine.poll_now())


@click.command(
    cls=TimewCommand,
    examples="""\
  timewsync start
  timewsync start work client-a""",
)
@click.argument("tags", nargs=-1)
@click.pass_obj
def start(app: AppContext, tags: tuple[str, ...]) -> None:
    """Start a timer with TAGS. Fails if one is already running."""
    app.emit(app.engine.start_timer(tags))


@click.command(cls=TimewCommand, examples="  timewsync stop")
@click.pass_obj
def stop(app: AppContext) -> None:
    """Stop the running timer."""
    app.emit(app.engine.stop_timer())


@click.command(cls=TimewCommand, examples="  timewsync toggle")
@click.pass_obj
def toggle(app: AppContext) -> None:
    """Stop the running timer, or start one with the most recent tags."""
    app.emit(app.engine.start_or_stop())


@click.command(
    cls=TimewCommand,
    examples="""\
  timewsync retag review
  timewsync retag work client-b""",
)
@click.argument("tags", nargs=-1, required=True)
@click.pass_obj
def retag(app: AppContext, tags: tuple[str, ...]) -> None:
    """Replace the running timer's tags, keeping its start time."""
    app.emit(app.engine.edit_tags(tags))

"""Command: follow the timer, printing events as they arrive."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from timewsync.commands._base import TimewCommand

if TYPE_CHECKING:
    from timewsync.commands._context import AppContext


@click.command(
    cls=TimewCommand,
    examples="""\
  timewsync watch
  timewsync --json watch --count 5""",
)
@click.option("--count", type=click.IntRange(min=1), default=None, help="Exit after N events.")
@click.pass_obj
def watch(app: AppContext, count: int | None) -> None:
    """Run the polling loop and print every event until interrupted."""
    engine = app.engine
    seen = 0
    with engine.publisher.subscribe() as events:
        engine.start()
        try:
            for event in events:
                app.emit_event(event)
                seen += 1
                if count is not None and seen >= count:
                    break
        except KeyboardInterrupt:
            pass

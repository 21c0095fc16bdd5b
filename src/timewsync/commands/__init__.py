"""Subcommand modules for timewsync.

Provides register_commands() which uses deferred imports to keep
``timewsync --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from timewsync.commands.send import send
    from timewsync.commands.timer import retag, start, status, stop, toggle
    from timewsync.commands.watch import watch

    cli.add_command(status)
    cli.add_command(start)
    cli.add_command(stop)
    cli.add_command(toggle)
    cli.add_command(retag)
    cli.add_command(send)
    cli.add_command(watch)

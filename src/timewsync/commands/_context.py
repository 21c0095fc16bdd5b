"""AppContext: shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy engine construction and centralized
output (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from timewsync.output.formatters import (
    OutputSettings,
    format_event,
    format_outcome,
    format_snapshot,
)

if TYPE_CHECKING:
    from timewsync.config.settings import TimewSettings
    from timewsync.domain.events import Event
    from timewsync.domain.state import CommandOutcome, EngineSnapshot
    from timewsync.services.engine import SyncEngine


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The engine is created lazily on first use so ``--help`` and
    ``--version`` never spawn the external tool or worker threads.
    """

    def __init__(self, settings: TimewSettings) -> None:
        self.settings = settings
        self._engine: SyncEngine | None = None

        from timewsync.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            verbose=self.settings.verbose,
        )

    @property
    def engine(self) -> SyncEngine:
        """The sync engine (created lazily on first access)."""
        if self._engine is None:
            from timewsync.services.engine import SyncEngine

            self._engine = SyncEngine.from_config(
                self.settings.sync,
                sync_hooks=self.settings.sync_hooks,
            )
        return self._engine

    def close(self) -> None:
        """Shut the engine down if one was created."""
        if self._engine is not None:
            self._engine.shutdown()
            self._engine = None

    def emit(self, outcome: CommandOutcome) -> None:
        """Output a CommandOutcome with correct exit semantics.

        * Success: writes to stdout, returns normally.
        * Failure: writes to stderr, exits with code 1.
        """
        output = format_outcome(outcome, settings=self.output_settings)
        if outcome.success:
            click.echo(output)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)

    def emit_snapshot(self, snapshot: EngineSnapshot) -> None:
        """Output the engine view; a degraded engine exits with code 1."""
        click.echo(format_snapshot(snapshot, settings=self.output_settings))
        if snapshot.is_stale or snapshot.state is None:
            raise SystemExit(1)

    def emit_event(self, event: Event) -> None:
        click.echo(format_event(event, settings=self.output_settings))

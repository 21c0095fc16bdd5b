"""Root CLI group for timewsync with global flags and command registration."""

from __future__ import annotations

import click

from timewsync import __version__
from timewsync.commands import register_commands
from timewsync.commands._context import AppContext
from timewsync.config.settings import ConfigError, TimewSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="timewsync")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--sync", "sync_hooks", is_flag=True, help="Run plugin hooks synchronously.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    sync_hooks: bool,
) -> None:
    """timewsync: live view and control of a Timewarrior timer."""
    try:
        settings = TimewSettings.from_cli(
            config_path=config_path,
            json_output=json_output,
            verbose=verbose,
            log_json=log_json,
            sync_hooks=sync_hooks,
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)

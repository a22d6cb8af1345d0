"""Click CLI definitions for prwatch.

``prwatch`` with no subcommand launches the TUI.  ``prwatch list`` does a
single fetch and prints the merged list, which is handy for scripts.
"""

import json

import click

from prwatch import gh_ops, paths
from prwatch.cli.helpers import CONTEXT_SETTINGS, HelpGroup, format_records
from prwatch.merge import display_order
from prwatch.models import FetchFailure
from prwatch.paths import configure_logger

_log = configure_logger("prwatch.cli")


@click.group(invoke_without_command=True, cls=HelpGroup, context_settings=CONTEXT_SETTINGS)
@click.option("--debug", is_flag=True, default=False,
              help="Write debug-level logs to ~/.prwatch/debug/prwatch.log")
@click.pass_context
def cli(ctx, debug: bool):
    """prwatch — watch pull requests waiting on your review."""
    if debug:
        paths.set_debug(True)
    if ctx.invoked_subcommand is None:
        ctx.invoke(tui_cmd)


@cli.command("tui")
def tui_cmd():
    """Launch the interactive dashboard (default)."""
    gh_ops.check_gh()
    from prwatch.tui.app import PRWatchApp
    _log.info("starting TUI")
    click.echo("Starting PR Review Watcher...")
    app = PRWatchApp()
    app.run()
    click.echo("PR Review Watcher exited.")
    raise SystemExit(app.return_code or 0)


@cli.command("list")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of text")
def list_cmd(as_json: bool):
    """Fetch once and print the PRs to review."""
    gh_ops.check_gh()
    from prwatch.scheduler import fetch_merged
    try:
        records = display_order(fetch_merged())
    except FetchFailure as e:
        _log.warning("list failed: %s", e)
        raise click.ClickException(str(e))
    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
    else:
        click.echo(format_records(list(records)))


def main():
    cli()


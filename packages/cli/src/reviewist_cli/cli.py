"""CLI entry point for reviewist.

Commands:
  run      poll GitHub for review requests and create Todoist tasks
  migrate  create the review request table in DATABASE_URL
  history  display recorded review requests
  stats    count recorded review requests per repository
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from reviewist_cli.commands.history import history_cmd
from reviewist_cli.commands.migrate import migrate_cmd
from reviewist_cli.commands.run import run_cmd
from reviewist_cli.commands.stats import stats_cmd

console = Console()

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    # httpx logs every request at INFO; keep that for --log-level DEBUG only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if level == "DEBUG" else logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("reviewist"),
    prog_name="reviewist",
)
@click.option(
    "--config",
    "config_path",
    default=".reviewist.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="REVIEWIST_CONFIG",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str):
    """Turn GitHub review requests into Todoist tasks."""
    from reviewist_cli.auth import resolve_github_token
    from reviewist_core.config import load_config

    _configure_logging(log_level.upper())
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config


main.add_command(run_cmd)
main.add_command(migrate_cmd)
main.add_command(history_cmd)
main.add_command(stats_cmd)

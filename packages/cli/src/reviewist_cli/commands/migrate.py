"""migrate command: create the review request schema."""

from __future__ import annotations

import click
from rich.console import Console

console = Console()


@click.command("migrate")
@click.pass_context
def migrate_cmd(ctx):
    """Create the review_requests table in DATABASE_URL if it does not exist.

    Safe to run repeatedly; existing records are left untouched.
    """
    from reviewist_cli.stores import store_from_context

    store = store_from_context(ctx)
    console.print(f"[green]Database ready:[/green] {store.db_path}")

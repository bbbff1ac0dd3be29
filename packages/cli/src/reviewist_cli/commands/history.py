"""history command: display recorded review requests from the store."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("history")
@click.option("--repo", default=None, help="Only show review requests for this repository name.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def history_cmd(ctx, repo: str | None, limit: int):
    """Show pull requests that have already been turned into tasks."""
    from reviewist_cli.stores import store_from_context

    store = store_from_context(ctx)
    records = store.list_records(collection=repo)
    if not records:
        console.print("[yellow]No review requests recorded.[/yellow]")
        return

    # Show most recent first, capped at --limit.
    records = list(reversed(records))[:limit]

    title = f"Review Requests: {repo}" if repo else "Review Requests"
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Repository", style="bold")
    table.add_column("PR", width=8)
    table.add_column("Title", max_width=50)
    table.add_column("Recorded At", width=20)

    for r in records:
        table.add_row(
            r.collection,
            f"#{r.item_number}",
            r.title[:50] if r.title else "",
            r.recorded_at[:19].replace("T", " "),
        )

    console.print(table)

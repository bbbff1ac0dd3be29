"""stats command: review requests per repository."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("stats")
@click.option("--top", default=10, show_default=True, help="Number of repositories to show.")
@click.pass_context
def stats_cmd(ctx, top: int):
    """Show which repositories send the most review requests."""
    from reviewist_cli.stores import store_from_context

    store = store_from_context(ctx)
    records = store.list_records()
    if not records:
        console.print("[yellow]No review requests recorded.[/yellow]")
        return

    per_repo = Counter(r.collection for r in records)

    console.print(f"\n[bold]Review requests recorded:[/bold] {len(records)}")
    console.print(f"  Repositories: {len(per_repo)}")

    table = Table(title=f"Top {top} Repositories", show_header=True)
    table.add_column("Repository")
    table.add_column("Requests", justify="right")
    table.add_column("% of total", justify="right")
    for name, count in per_repo.most_common(top):
        table.add_row(name, str(count), f"{count / len(records) * 100:.1f}%")
    console.print(table)

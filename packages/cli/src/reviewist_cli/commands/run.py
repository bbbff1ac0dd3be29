"""run command: poll GitHub notifications and create Todoist tasks."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console

from reviewist_core.config import validate_config
from reviewist_core.errors import ConfigError
from reviewist_core.gh.client import build_http_client
from reviewist_core.gh.notifications import PageFetcher
from reviewist_core.gh.polling import PollCycleOrchestrator, notifications_url
from reviewist_core.gh.pull_requests import DetailResolver
from reviewist_core.gh.stream import CycleStreamDriver
from reviewist_core.models import ReviewItem
from reviewist_core.pipeline import ReviewPipeline
from reviewist_core.todoist import TodoistSink, build_todoist_client
from reviewist_store.base import BaseStore
from reviewist_store.gate import DedupGate
from reviewist_store.models import ReviewRequestRecord

console = Console()


def _item_to_record(item: ReviewItem) -> ReviewRequestRecord:
    """Map a resolved pull request to the record the store deduplicates on.

    The CLI owns this mapping: reviewist_core has no store knowledge and
    reviewist_store has no core knowledge. The CLI bridges the two.
    """
    return ReviewRequestRecord(
        collection=item.collection,
        item_number=str(item.number),
        url=item.url,
        title=item.title,
    )


async def run_pipeline(
    config: dict,
    store: BaseStore,
    max_cycles: int | None = None,
    github_transport=None,
    todoist_transport=None,
) -> None:
    """Build every pipeline stage from ``config`` and run until cancelled (or ``max_cycles``)."""
    timeout = config["request_timeout"]
    gate = DedupGate(store, workers=config["store_workers"])

    async def admit(item: ReviewItem) -> bool:
        return await gate.admit(_item_to_record(item))

    try:
        async with (
            build_http_client(config["github_token"], timeout, transport=github_transport) as github,
            build_todoist_client(config["todoist_token"], timeout, transport=todoist_transport) as todoist,
        ):
            orchestrator = PollCycleOrchestrator(PageFetcher(github), notifications_url(config["github_base"]))
            pipeline = ReviewPipeline(
                driver=CycleStreamDriver(orchestrator, failure_wait_seconds=config["failure_wait_seconds"]),
                resolver=DetailResolver(github, concurrency=config["concurrency"]),
                admit=admit,
                sink=TodoistSink(todoist, config["todoist_base"], due=config["task_due"]),
            )
            await pipeline.run(max_cycles=max_cycles)
    finally:
        gate.close()


@click.command("run")
@click.option(
    "--cycles",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many poll cycles. Omit to poll until interrupted.",
)
@click.pass_context
def run_cmd(ctx, cycles: int | None):
    """Poll GitHub for review requests and create a Todoist task for each new one.

    \b
    Required environment variables:
      GITHUB_TOKEN    GitHub token with notifications scope (or use gh CLI)
      TODOIST_TOKEN   Todoist API token
      DATABASE_URL    SQLite database used to remember handled pull requests

    Set failure_wait_seconds in .reviewist.yml to pause after a failed poll
    cycle; by default the next cycle starts immediately.
    """
    from reviewist_cli.stores import store_from_context

    config = ctx.obj["config"]
    try:
        validate_config(config)
    except ConfigError as e:
        raise click.UsageError(str(e))

    store = store_from_context(ctx)
    console.print(f"[cyan]Polling {config['github_base']} for review requests...[/cyan]")
    try:
        asyncio.run(run_pipeline(config, store, max_cycles=cycles))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted, stopping.[/yellow]")

"""Store construction shared by the commands that need persistence."""

from __future__ import annotations

import click

from reviewist_core.config import database_path
from reviewist_store.sqlite import SQLiteStore


def build_store(config: dict) -> SQLiteStore:
    database_url = config.get("database_url")
    if not database_url:
        raise click.UsageError("DATABASE_URL is not set. Export it or add 'database_url' to .reviewist.yml.")
    return SQLiteStore(db_path=database_path(database_url))


def store_from_context(ctx: click.Context) -> SQLiteStore:
    """Open the configured store once per invocation and close it on exit."""
    root = ctx.find_root()
    store = root.obj.get("store")
    if store is None:
        store = build_store(root.obj["config"])
        root.obj["store"] = store
        root.call_on_close(store.close)
    return store

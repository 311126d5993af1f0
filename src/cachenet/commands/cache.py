"""Cache commands -- inspect and maintain the on-disk response cache.

Provides the ``cachenet cache`` sub-command group.  The commands operate on
the directory resolved from the configuration (``cache.directory``, the
``CACHENET_CACHE_DIR`` environment variable, or the XDG cache directory).
"""

from __future__ import annotations

from typing import Optional

import typer

from cachenet.models import ResponseType
from cachenet.output import format_response, info, print_table, success


cache_app = typer.Typer(no_args_is_help=True)


def _open_store():
    from cachenet.cache import CacheStore
    from cachenet.config import get_cache_dir, resolve_config

    config = resolve_config()
    return CacheStore(config.cache.directory or get_cache_dir())


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show the number of cached entries and the cache directory.

    Example::

        cachenet cache stats
        cachenet --json cache stats
    """
    store = _open_store()
    try:
        stats = store.stats()
    finally:
        store.close()

    if ctx.obj and ctx.obj.get("json"):
        format_response(stats)
        return
    print_table(
        ["Setting", "Value"],
        [[key, str(value)] for key, value in stats.items()],
        title="Response cache",
    )


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Delete every cached response.

    Asks for confirmation unless ``--force`` is active.

    Raises:
        CacheError: If the cache directory cannot be cleared.
    """
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Delete all cached responses?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    store = _open_store()
    try:
        store.clear()
    finally:
        store.close()
    success("Cache cleared.")


@cache_app.command("invalidate")
def cache_invalidate(
    name: str = typer.Argument(help="Cache name (the request path unless one was given)."),
    response_type: Optional[ResponseType] = typer.Option(
        None, "--type", "-t", help="Only drop the entry of this response type."
    ),
) -> None:
    """Drop the cached entries stored under NAME."""
    store = _open_store()
    try:
        store.invalidate(name, response_type)
    finally:
        store.close()
    success(f"Invalidated {name}")

"""Cache management commands."""

from pathlib import Path
from typing import Optional

import typer

from ..cache import DetectionCache, format_statistics
from ..exceptions import SeedProbeError
from . import app
from ._common import console, resolve_config

_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Configuration file (TOML)",
    exists=True,
    file_okay=True,
    dir_okay=False,
)


def _open_cache(config: Optional[Path]) -> Optional[DetectionCache]:
    settings = resolve_config(config=config)
    if not settings.cache.enabled:
        console.print("[yellow]Cache is disabled[/yellow]")
        return None
    return DetectionCache(settings.cache)


@app.command()
def cache_info(config: Optional[Path] = _CONFIG_OPTION):
    """Show detection cache information and statistics."""
    try:
        cache = _open_cache(config)
        if cache is None:
            raise typer.Exit(0)
        with cache:
            stats = cache.get_statistics()
    except SeedProbeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print("[bold cyan]SeedProbe Cache Info[/bold cyan]")
    console.print()
    console.print(format_statistics(stats), highlight=False)


@app.command()
def cache_clear(config: Optional[Path] = _CONFIG_OPTION):
    """Remove every cached detection result."""
    try:
        cache = _open_cache(config)
        if cache is None:
            raise typer.Exit(0)
        with cache:
            removed = cache.clear()
    except SeedProbeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]Cache cleared successfully[/green] ({removed} entries)")


@app.command()
def cache_prune(config: Optional[Path] = _CONFIG_OPTION):
    """Remove expired and corrupt entries, then enforce size limits."""
    try:
        cache = _open_cache(config)
        if cache is None:
            raise typer.Exit(0)
        with cache:
            expired = cache.cleanup_expired_entries()
            evicted = cache.enforce_max_size()
    except SeedProbeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]Pruned cache[/green]: {expired} expired, {evicted} evicted")

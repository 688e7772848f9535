"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="seedprobe",
    help="SeedProbe - Platform Architecture Detection",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool):
    if value:
        console.print(f"seedprobe {__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Detect individual, team, or hybrid platform architecture from a schema snapshot."""


# Import subcommands to register them
from .detect import detect as _detect  # noqa: F401, E402
from .cache import (  # noqa: F401, E402
    cache_clear as _cache_clear,
    cache_info as _cache_info,
    cache_prune as _cache_prune,
)


def main():
    app()

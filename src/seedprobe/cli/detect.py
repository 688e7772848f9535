"""Architecture detection command."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import SeedProbeError
from ..logging_config import get_logger, setup_logging
from ..service import DetectionOutcome, DetectionService
from ..snapshot import SchemaSnapshot
from . import app
from ._common import console, resolve_config, score_bar

logger = get_logger(__name__)


@app.command()
def detect(
    snapshot_file: Path = typer.Argument(
        ...,
        help="Schema snapshot JSON (tables, relationships, columns, functions)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    database_url: str = typer.Option(
        "",
        "--database-url",
        "-d",
        help="Database identity used for caching (credentials are never stored)",
    ),
    fmt: str = typer.Option(
        "rich",
        "--format",
        "-f",
        help="Output format: rich (human-readable) or json",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Skip the detection cache",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show every evidence item and debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress logging",
    ),
):
    """
    Detect whether a schema is built for individuals, teams, or both.

    [bold cyan]Examples:[/bold cyan]

      seedprobe detect schema.json

      seedprobe detect schema.json --database-url postgres://db.example.com/app

      seedprobe detect schema.json --format json --no-cache
    """
    if fmt not in ("rich", "json"):
        console.print(f"[red]Error:[/red] unknown format '{fmt}' (use rich or json)")
        raise typer.Exit(2)

    try:
        settings = resolve_config(config=config, no_cache=no_cache, verbose=verbose, quiet=quiet)
        setup_logging(settings.verbosity)
        snapshot = SchemaSnapshot.from_file(snapshot_file)

        with DetectionService.from_config(settings) as service:
            outcome = service.detect(snapshot, database_identity=database_url)

        if fmt == "json":
            _output_json(outcome)
        else:
            _output_rich(outcome, verbose=verbose)

    except typer.Exit:
        raise
    except SeedProbeError as e:
        if fmt == "json":
            print(json.dumps(e.to_dict(), indent=2))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Unexpected error")
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


def _output_json(outcome: DetectionOutcome):
    result = outcome.result
    output = {
        "architecture": result.architecture.value if result.architecture else None,
        "cache_key": outcome.cache_key,
        "schema_hash": outcome.schema_hash,
        "from_cache": outcome.from_cache,
        **result.to_dict(),
    }
    print(json.dumps(output, indent=2))


def _output_rich(outcome: DetectionOutcome, verbose: bool = False):
    result = outcome.result

    console.print()
    console.print("[bold cyan]SEEDPROBE - Platform Architecture[/bold cyan]")
    console.print()

    # ── Verdict ────────────────────────────────────────────────────
    if result.architecture is None:
        console.print("  Architecture: [yellow]undetermined[/yellow] (no evidence)")
    else:
        console.print(f"  Architecture: [bold green]{result.architecture.value}[/bold green]")
    console.print(f"  Confidence:   {result.overall_confidence:.2f}")
    if outcome.from_cache:
        console.print("  [dim](served from cache)[/dim]")
    console.print()

    # ── Scores ─────────────────────────────────────────────────────
    scores = Table(title="Architecture Scores", show_header=True, header_style="bold")
    scores.add_column("Hypothesis")
    scores.add_column("Score", justify="right")
    scores.add_column("")
    for arch, value in result.architecture_scores.ranked():
        scores.add_row(arch.value, f"{value:.2f}", score_bar(value))
    console.print(scores)
    console.print()

    # ── Features ───────────────────────────────────────────────────
    if result.platform_features:
        features = Table(title="Platform Features", show_header=True, header_style="bold")
        features.add_column("Feature")
        features.add_column("Category")
        features.add_column("Confidence", justify="right")
        features.add_column("Tables")
        for feature in result.platform_features:
            features.add_row(
                feature.name,
                feature.category,
                f"{feature.confidence:.2f}",
                ", ".join(feature.implementing_tables),
            )
        console.print(features)
        console.print()

    # ── Evidence ───────────────────────────────────────────────────
    if verbose and result.evidence:
        evidence = Table(title="Evidence", show_header=True, header_style="bold")
        evidence.add_column("Type")
        evidence.add_column("Description")
        evidence.add_column("Strength", justify="right")
        for item in sorted(result.evidence, key=lambda e: e.strength, reverse=True):
            evidence.add_row(item.type.value, item.description, f"{item.strength:.2f}")
        console.print(evidence)
        console.print()

    # ── Reasoning ──────────────────────────────────────────────────
    console.print("[bold]Reasoning[/bold]")
    for line in result.reasoning:
        console.print(f"  {line}")
    console.print()

    if result.warnings:
        console.print("[bold yellow]Warnings[/bold yellow]")
        for warning in result.warnings:
            console.print(f"  [yellow]![/yellow] {warning}")
        console.print()

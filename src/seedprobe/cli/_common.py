"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import DetectionConfig, load_config

console = Console()


def resolve_config(
    config: Optional[Path] = None,
    no_cache: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> DetectionConfig:
    """Build configuration from CLI options."""
    overrides = {}
    if no_cache:
        overrides["cache"] = {"enabled": False}
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)


def score_bar(score: float, width: int = 20) -> str:
    """Fixed-width bar for a [0, 1] score."""
    filled = int(round(max(0.0, min(score, 1.0)) * width))
    return "█" * filled + "░" * (width - filled)

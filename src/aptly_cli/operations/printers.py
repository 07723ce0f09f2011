"""
Human-readable output formatting.

Centralizes CLI output so commands only fetch data from the context.
"""
from __future__ import annotations

import json
from typing import Dict, List

import typer

from ..config import ConfigStructure
from ..options import DependencyOptions

_OPTION_LABELS = {
    DependencyOptions.FOLLOW_SUGGESTS: "suggests",
    DependencyOptions.FOLLOW_RECOMMENDS: "recommends",
    DependencyOptions.FOLLOW_ALL_VARIANTS: "all-variants",
    DependencyOptions.FOLLOW_SOURCE: "source",
}


def print_config(config: ConfigStructure) -> None:
    """Print the configuration document as it would be saved."""
    typer.echo(json.dumps(config.model_dump(by_alias=True), indent=2))


def format_dependency_options(options: DependencyOptions) -> str:
    """
    Comma-separated capability names, or "none".

    Example:
        FOLLOW_SUGGESTS | FOLLOW_SOURCE -> "suggests, source"
    """
    labels = [label for flag, label in _OPTION_LABELS.items() if flag in options]
    return ", ".join(labels) if labels else "none"


def print_context_summary(options: DependencyOptions, architectures: List[str]) -> None:
    """
    Print dependency options and architecture list.

    Args:
        options: Composed dependency options
        architectures: Resolved architecture list (empty means "all")
    """
    typer.echo(f"Dependency options: {format_dependency_options(options)}")
    if architectures:
        typer.echo(f"Architectures: {', '.join(architectures)}")
    else:
        typer.echo("Architectures: all")


def print_collection_stats(stats: Dict[str, int]) -> None:
    for name, count in stats.items():
        typer.echo(f"{name.replace('_', ' ')}: {count}")

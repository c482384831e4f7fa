# Copyright (c) Syntropy Systems
"""reachmatrix matrix command."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from reachmatrix.cli._display import matrix_table
from reachmatrix.config import load_config
from reachmatrix.matrix import generate_configurations

console = Console()


def matrix(
    config_file: Path | None = typer.Option(
        None,
        "--config", "-c",
        help="Path to reachmatrix.yaml (default: nearest one)",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    r"""Show every configuration and the tests it must pass or fail.

    Example reachmatrix.yaml restricting the matrix:

    \b
        matrix:
          opt_levels: [s, z]
          lto: [thin, fat]
          include_debug: false
    """
    try:
        config = load_config(config_file)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from e

    configs = generate_configurations(config.matrix)
    console.print(matrix_table(configs))
    console.print(f"\n[bold]{len(configs)} configurations[/bold]")

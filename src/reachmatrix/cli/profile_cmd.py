# Copyright (c) Syntropy Systems
"""reachmatrix profile command."""

import typer
from rich.console import Console

from reachmatrix.errors import ConfigSerializationError
from reachmatrix.models.domain import Configuration
from reachmatrix.profile import render_profile_block

console = Console()


def profile(
    opt_level: str = typer.Option(
        ...,
        "--opt-level", "-O",
        help="Optimization level: 0, 1, 2, 3, s or z",
    ),
    lto: str = typer.Option(
        "off",
        "--lto", "-l",
        help="LTO mode: off, thin or fat",
    ),
    debug: bool = typer.Option(
        False,
        "--debug", "-d",
        help="Enable debug assertions",
    ),
) -> None:
    """Print the Cargo profile block appended for a configuration."""
    try:
        config = Configuration.parse(opt_level, lto, debug_assertions=debug)
        block = render_profile_block(config)
    except (ValueError, ConfigSerializationError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    # Plain output so it can be redirected into a manifest
    typer.echo(block, nl=False)

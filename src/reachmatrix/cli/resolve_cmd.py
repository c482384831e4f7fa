# Copyright (c) Syntropy Systems
"""reachmatrix resolve command."""

import typer
from rich.console import Console

from reachmatrix.cli._display import format_tests
from reachmatrix.models.domain import Configuration
from reachmatrix.resolver import resolve

console = Console()


def resolve_cmd(
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
    """Show which tests apply to a single configuration."""
    try:
        config = Configuration.parse(opt_level, lto, debug_assertions=debug)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    applicability = resolve(config)
    console.print(f"[bold]{config.name}[/bold]")
    console.print(
        f"  [green]Must pass:[/green] {format_tests(applicability.applicable_ordered)}"
    )
    console.print(
        "  [yellow]Must fail to build:[/yellow] "
        f"{format_tests(applicability.expected_failures_ordered)}"
    )

# Copyright (c) Syntropy Systems
"""reachmatrix run command."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from reachmatrix.cli._display import format_tests, verdict_table
from reachmatrix.cli._logging import setup_logging
from reachmatrix.config import load_config
from reachmatrix.driver import MANIFEST_NAME, MatrixDriver
from reachmatrix.errors import ToolchainUnavailableError
from reachmatrix.matrix import generate_configurations, select_configurations
from reachmatrix.models.report import ConfigVerdict, MatrixReport
from reachmatrix.profile import conflicting_profiles
from reachmatrix.toolchain import CargoToolchain

console = Console()

# Exit code when the run aborted on an unavailable toolchain
EXIT_ABORTED = 2


def _print_verdict(verdict: ConfigVerdict) -> None:
    if verdict.passed:
        console.print(f"[green]✓[/green] {verdict.config_name}")
        return
    console.print(f"[red]✗[/red] {verdict.config_name}")
    if verdict.failed_tests:
        console.print(f"  [dim]failed:[/dim] {format_tests(verdict.failed_tests)}")
    for test in verdict.unexpectedly_built_probes:
        console.print(
            f"  [dim]expected {test.value} to fail to build but it built[/dim]"
        )
    if verdict.error:
        console.print(f"  [dim]error:[/dim] {verdict.error}")


def _finish(report: MatrixReport, report_path: Path | None) -> None:
    console.print()
    console.print(verdict_table(report))

    if report_path is not None:
        report.write_json(report_path)
        console.print(f"[dim]Report written to {report_path}[/dim]")


def run(
    crate_dir: Path = typer.Argument(
        Path(),
        help="Crate directory containing Cargo.toml",
        exists=True,
        file_okay=False,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config", "-c",
        help="Path to reachmatrix.yaml (default: nearest one)",
        exists=True,
        dir_okay=False,
    ),
    only: list[str] | None = typer.Option(
        None,
        "--only", "-o",
        help="Run only the named configuration (repeatable)",
    ),
    jobs: int | None = typer.Option(
        None,
        "--jobs", "-j",
        envvar="REACHMATRIX_JOBS",
        min=1,
        help="Configurations to build concurrently",
    ),
    cargo: str | None = typer.Option(
        None,
        "--cargo",
        envvar="REACHMATRIX_CARGO",
        help="Cargo binary to invoke",
    ),
    feature: str | None = typer.Option(
        None,
        "--feature", "-f",
        help="Feature enabled on every invocation",
    ),
    report_path: Path | None = typer.Option(
        None,
        "--report", "-r",
        help="Write the JSON report to this file",
        dir_okay=False,
    ),
    keep_workspaces: bool = typer.Option(
        False,
        "--keep-workspaces",
        help="Keep workspaces of passing configurations",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Log every toolchain step",
    ),
) -> None:
    """Build and test the crate under every matrix configuration.

    Exits 0 when every configuration passes, 1 when any fails, and 2 when
    the toolchain is unavailable.
    """
    setup_logging(verbose)

    crate_dir = crate_dir.resolve()
    manifest = crate_dir / MANIFEST_NAME
    if not manifest.is_file():
        console.print(f"[red]Error:[/red] No {MANIFEST_NAME} in {crate_dir}")
        raise typer.Exit(1)

    conflicts = conflicting_profiles(manifest.read_text(errors="replace"))
    if conflicts:
        tables = ", ".join(f"[profile.{name}]" for name in conflicts)
        console.print(
            f"[red]Error:[/red] {MANIFEST_NAME} already defines {escape(tables)}; "
            "remove them so each configuration can append its own"
        )
        raise typer.Exit(1)

    try:
        config = load_config(config_file, start_path=crate_dir)
        configs = select_configurations(
            generate_configurations(config.matrix), only or []
        )
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from e

    if jobs is not None:
        config.jobs = jobs
    if cargo is not None:
        config.cargo = cargo
    if feature is not None:
        config.feature = feature
    if keep_workspaces:
        config.keep_workspaces = True

    toolchain = CargoToolchain(
        cargo=config.cargo,
        feature=config.feature,
        timeout=config.timeout,
        kill_grace_period=config.kill_grace_period,
    )
    driver = MatrixDriver(crate_dir, toolchain, config)

    console.print(
        f"[bold]Checking {len(configs)} configurations[/bold] "
        f"[dim]({config.jobs} at a time, workspaces in {driver.workspace_root})[/dim]"
    )

    try:
        report = driver.run(configs, on_verdict=_print_verdict)
    except ToolchainUnavailableError as e:
        _finish(driver.report, report_path)
        console.print(f"[red]Aborted:[/red] {e}")
        raise typer.Exit(EXIT_ABORTED) from e

    _finish(report, report_path)

    failures = report.failures
    if failures:
        console.print(
            f"[red]{len(failures)} of {len(report.verdicts)} configurations failed[/red]"
        )
        raise typer.Exit(1)

    console.print(f"[green]All {len(report.verdicts)} configurations passed[/green]")

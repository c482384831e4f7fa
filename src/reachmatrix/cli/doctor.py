# Copyright (c) Syntropy Systems
"""reachmatrix doctor command."""

import re
import subprocess
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from reachmatrix.config import find_config_file, load_config
from reachmatrix.driver import MANIFEST_NAME
from reachmatrix.errors import ToolchainUnavailableError
from reachmatrix.models.domain import ALL_TESTS
from reachmatrix.profile import conflicting_profiles
from reachmatrix.toolchain import CargoToolchain

console = Console()


def doctor(
    crate_dir: Path = typer.Argument(
        Path(),
        help="Crate directory containing Cargo.toml",
        file_okay=False,
    ),
    cargo: Optional[str] = typer.Option(
        None,
        "--cargo",
        envvar="REACHMATRIX_CARGO",
        help="Cargo binary to check",
    ),
) -> None:
    """Check the toolchain and crate layout.

    Verifies:
    - cargo is on PATH and runs
    - Cargo.toml exists and declares the test feature
    - every reachability test target has a source file
    """
    issues: list[str] = []
    warnings: list[str] = []

    crate_dir = crate_dir.resolve()

    # Config
    config_path = find_config_file(crate_dir)
    try:
        config = load_config(config_path, start_path=crate_dir)
    except (OSError, ValueError) as e:
        console.print(f"[red]✗[/red] Config error: {e}")
        raise typer.Exit(1) from e
    if config_path is not None:
        console.print(f"[green]✓[/green] Config: {config_path}")
    else:
        console.print("[dim]•[/dim] No reachmatrix.yaml found, using defaults")
    if cargo is not None:
        config.cargo = cargo

    # Toolchain
    toolchain = CargoToolchain(cargo=config.cargo, feature=config.feature)
    try:
        cargo_path = toolchain.resolve_binary()
    except ToolchainUnavailableError as e:
        console.print(f"[red]✗[/red] {e}")
        issues.append("Toolchain missing")
    else:
        try:
            result = subprocess.run(  # noqa: S603
                [cargo_path, "--version"],
                capture_output=True,
                text=True,
                timeout=30,
                check=False,
            )
            if result.returncode == 0:
                console.print(f"[green]✓[/green] {result.stdout.strip()}")
            else:
                console.print(f"[red]✗[/red] {cargo_path} --version failed")
                issues.append("Toolchain broken")
        except subprocess.TimeoutExpired:
            console.print("[yellow]⚠[/yellow] cargo --version timed out")
            warnings.append("cargo --version timed out")
        except OSError as e:
            console.print(f"[red]✗[/red] Cannot execute {cargo_path}: {e}")
            issues.append("Toolchain not executable")

    # Manifest
    manifest = crate_dir / MANIFEST_NAME
    if not manifest.is_file():
        console.print(f"[red]✗[/red] {MANIFEST_NAME} not found in {crate_dir}")
        issues.append(f"{MANIFEST_NAME} missing")
    else:
        console.print(f"[green]✓[/green] Manifest: {manifest}")
        text = manifest.read_text(errors="replace")
        feature_pattern = rf'^\s*"?{re.escape(config.feature)}"?\s*='
        if re.search(feature_pattern, text, re.MULTILINE):
            console.print(f"[green]✓[/green] Feature declared: {config.feature}")
        else:
            console.print(
                f"[yellow]⚠[/yellow] Feature not declared: {config.feature}"
            )
            warnings.append(f"Feature {config.feature} not declared")
        conflicts = conflicting_profiles(text)
        if conflicts:
            console.print(
                f"[red]✗[/red] Manifest already defines profiles: {', '.join(conflicts)}"
            )
            issues.append("Existing profile tables conflict with appended ones")

    # Test targets
    tests_dir = crate_dir / "tests"
    for test in ALL_TESTS:
        source = tests_dir / f"{test.value}.rs"
        if source.is_file():
            console.print(f"[green]✓[/green] Test target: {test.value}")
        else:
            console.print(f"[yellow]⚠[/yellow] Test target missing: {source}")
            warnings.append(f"Test target {test.value} missing")

    # Summary
    console.print()
    if issues:
        console.print(f"[red]Found {len(issues)} issue(s)[/red]")
        for issue in issues:
            console.print(f"  - {issue}")
        raise typer.Exit(1)
    if warnings:
        console.print(f"[yellow]Found {len(warnings)} warning(s)[/yellow]")
        for warning in warnings:
            console.print(f"  - {warning}")
    else:
        console.print("[green]All checks passed[/green]")

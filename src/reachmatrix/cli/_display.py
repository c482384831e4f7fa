# Copyright (c) Syntropy Systems
"""Shared Rich rendering for reachmatrix commands."""
from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table

from reachmatrix.resolver import resolve

if TYPE_CHECKING:
    from reachmatrix.models.domain import Configuration, TestId
    from reachmatrix.models.report import ConfigVerdict, MatrixReport


def format_tests(tests: list[TestId]) -> str:
    if not tests:
        return "[dim]-[/dim]"
    return ", ".join(t.value for t in tests)


def matrix_table(configs: list[Configuration], title: str = "Build matrix") -> Table:
    """Table of configurations with their resolved test partition."""
    table = Table(title=title)
    table.add_column("#", style="dim")
    table.add_column("Configuration")
    table.add_column("Debug")
    table.add_column("Opt")
    table.add_column("LTO")
    table.add_column("Must pass", style="green")
    table.add_column("Must fail to build", style="yellow")

    for i, config in enumerate(configs):
        applicability = resolve(config)
        table.add_row(
            str(i),
            config.name,
            "yes" if config.debug_assertions else "no",
            config.opt_level.label,
            config.lto.label,
            format_tests(applicability.applicable_ordered),
            format_tests(applicability.expected_failures_ordered),
        )

    return table


def _status_cell(verdict: ConfigVerdict) -> str:
    status = verdict.status
    if status == "passed":
        return "[green]passed[/green]"
    if status == "error":
        return "[red]error[/red]"
    return "[red]failed[/red]"


def verdict_table(report: MatrixReport) -> Table:
    """Table of per-configuration verdicts."""
    table = Table(title="Verdicts")
    table.add_column("Configuration")
    table.add_column("Status")
    table.add_column("Failed tests")
    table.add_column("Unexpectedly built")
    table.add_column("Error")
    table.add_column("Time", justify="right", style="dim")

    for verdict in report.verdicts:
        table.add_row(
            verdict.config_name,
            _status_cell(verdict),
            format_tests(verdict.failed_tests),
            format_tests(verdict.unexpectedly_built_probes),
            verdict.error or "",
            f"{verdict.duration_seconds:.1f}s",
        )

    return table

# Copyright (c) Syntropy Systems
"""Exception hierarchy for reachmatrix."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from reachmatrix.models.domain import TestId


class ReachMatrixError(Exception):
    """Base class for all reachmatrix errors."""


class ConfigSerializationError(ReachMatrixError, ValueError):
    """A configuration value has no profile literal."""


class ToolchainInfrastructureError(ReachMatrixError):
    """A toolchain step failed for reasons unrelated to the matrix."""

    def __init__(self, message: str, log_path: Path | None = None) -> None:
        self.log_path = log_path
        if log_path is not None:
            message = f"{message} (see {log_path})"
        super().__init__(message)


class ToolchainUnavailableError(ToolchainInfrastructureError):
    """The toolchain cannot be executed at all. Aborts the run."""


class VerdictFailure(ReachMatrixError):
    """Tests disagreed with their expected outcome for one configuration."""

    def __init__(
        self,
        config_name: str,
        failed_tests: Iterable[TestId] = (),
        unexpectedly_built: Iterable[TestId] = (),
    ) -> None:
        self.config_name = config_name
        self.failed_tests = list(failed_tests)
        self.unexpectedly_built = list(unexpectedly_built)

        parts: list[str] = []
        if self.failed_tests:
            names = ", ".join(t.value for t in self.failed_tests)
            parts.append(f"tests failed: {names}")
        for test in self.unexpectedly_built:
            parts.append(f"expected {test.value} to fail to build but it built")
        super().__init__(f"{config_name}: " + "; ".join(parts))

# Copyright (c) Syntropy Systems
"""Pydantic records for per-configuration verdicts and the run report."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, computed_field

from .base import ReachBaseModel
from .domain import TestId

if TYPE_CHECKING:
    from pathlib import Path

    from .domain import Configuration


class ConfigVerdict(ReachBaseModel):
    """Outcome of one configuration.

    ``passed`` is false whenever a test failed, a probe built, or the
    configuration hit an error before the matrix checks completed.
    """

    config_name: str
    debug_assertions: bool = False
    opt_level: str = ""
    lto: str = ""
    passed: bool
    failed_tests: list[TestId] = Field(default_factory=list)
    unexpectedly_built_probes: list[TestId] = Field(default_factory=list)
    error: str | None = None
    duration_seconds: float = 0.0

    @classmethod
    def for_config(
        cls,
        config: Configuration,
        *,
        failed_tests: list[TestId] | None = None,
        unexpectedly_built_probes: list[TestId] | None = None,
        error: str | None = None,
        duration_seconds: float = 0.0,
    ) -> ConfigVerdict:
        """Build a verdict, deriving ``passed`` from the recorded problems."""
        failed = failed_tests or []
        built = unexpectedly_built_probes or []
        return cls(
            config_name=config.name,
            debug_assertions=config.debug_assertions,
            opt_level=str(getattr(config.opt_level, "label", config.opt_level)),
            lto=str(getattr(config.lto, "label", config.lto)),
            passed=not failed and not built and error is None,
            failed_tests=failed,
            unexpectedly_built_probes=built,
            error=error,
            duration_seconds=duration_seconds,
        )

    @property
    def status(self) -> str:
        if self.error is not None:
            return "error"
        return "passed" if self.passed else "failed"


class MatrixReport(ReachBaseModel):
    """All verdicts of a run, in generation order."""

    verdicts: list[ConfigVerdict] = Field(default_factory=list)
    aborted: bool = False
    abort_reason: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def passed(self) -> bool:
        """Aggregate verdict: every configuration passed and nothing aborted."""
        return not self.aborted and all(v.passed for v in self.verdicts)

    @property
    def failures(self) -> list[ConfigVerdict]:
        return [v for v in self.verdicts if not v.passed]

    def write_json(self, path: Path) -> None:
        """Write the report as indented JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        _ = path.write_text(self.model_dump_json(indent=2) + "\n")

    @classmethod
    def read_json(cls, path: Path) -> MatrixReport:
        return cls.model_validate_json(path.read_text())

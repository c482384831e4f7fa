# Copyright (c) Syntropy Systems
"""Matrix driver: build every configuration and collect verdicts."""
from __future__ import annotations

import logging
import shutil
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from reachmatrix.config import DriverConfig
from reachmatrix.errors import (
    ConfigSerializationError,
    ToolchainInfrastructureError,
    ToolchainUnavailableError,
    VerdictFailure,
)
from reachmatrix.models.report import ConfigVerdict, MatrixReport
from reachmatrix.profile import append_profile, render_profile_block
from reachmatrix.resolver import resolve
from reachmatrix.toolchain import failing_tests_from_output

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from reachmatrix.models.domain import Configuration, TestId
    from reachmatrix.toolchain import CommandResult, Toolchain

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"

# Never copied into a workspace
IGNORED_SOURCES = ("target", ".git", ".github", "*.nix")


def workspace_dirnames(configs: list[Configuration]) -> list[str]:
    """Name one workspace directory per scheduled configuration.

    Repeated configurations get ``-2``, ``-3``... suffixes so no two
    entries ever build in the same directory.
    """
    seen: dict[str, int] = {}
    names: list[str] = []
    for config in configs:
        count = seen.get(config.name, 0) + 1
        seen[config.name] = count
        names.append(config.name if count == 1 else f"{config.name}-{count}")
    return names


class MatrixDriver:
    """Runs the reachability tests of one crate across a configuration matrix.

    Each configuration gets its own copy of the crate, so concurrent builds
    never share profile state or artifacts.
    """

    crate_dir: Path
    toolchain: Toolchain
    config: DriverConfig
    report: MatrixReport

    def __init__(
        self,
        crate_dir: Path,
        toolchain: Toolchain,
        config: DriverConfig | None = None,
    ) -> None:
        self.crate_dir = crate_dir
        self.toolchain = toolchain
        self.config = config or DriverConfig()
        self.report = MatrixReport()

    @property
    def workspace_root(self) -> Path:
        return self.config.workspace_root(self.crate_dir)

    def materialize(self, config: Configuration, dirname: str | None = None) -> Path:
        """Copy the crate into a fresh workspace and append its profile.

        The workspace is ``workspace_root / dirname``, defaulting to the
        configuration name. Raises ConfigSerializationError before touching
        the filesystem when the configuration has no profile rendering, and
        ToolchainInfrastructureError when the workspace cannot be written.
        """
        _ = render_profile_block(config)

        workspace = self.workspace_root / (dirname or config.name)
        ignored = list(IGNORED_SOURCES)
        if self.workspace_root.resolve().is_relative_to(self.crate_dir.resolve()):
            ignored.append(self.workspace_root.name)

        try:
            if workspace.exists():
                shutil.rmtree(workspace)
            _ = shutil.copytree(
                self.crate_dir,
                workspace,
                ignore=shutil.ignore_patterns(*ignored),
                symlinks=True,
            )
            _ = append_profile(workspace / MANIFEST_NAME, config)
        except OSError as e:
            msg = f"workspace setup failed: {e}"
            raise ToolchainInfrastructureError(msg) from e
        return workspace

    def _require(self, result: CommandResult, step: str) -> None:
        if not result.ok:
            msg = f"{step} failed with exit code {result.exit_code}"
            raise ToolchainInfrastructureError(msg, result.log_path)

    def _run_applicable(self, workspace: Path, tests: list[TestId]) -> list[TestId]:
        result = self.toolchain.test_named(workspace, tests)
        if result.ok:
            return []

        failed = failing_tests_from_output(result.output(), tests)
        if not failed:
            msg = f"library tests failed with exit code {result.exit_code}"
            raise ToolchainInfrastructureError(msg, result.log_path)
        return failed

    def _probe_expected_failures(
        self, workspace: Path, tests: list[TestId]
    ) -> list[TestId]:
        built: list[TestId] = []
        for test in tests:
            logger.debug("[%s] probing %s", workspace.name, test.value)
            if self.toolchain.build_test(workspace, test).ok:
                built.append(test)
        return built

    def _check(self, config: Configuration, dirname: str | None) -> Path:
        workspace = self.materialize(config, dirname)
        applicability = resolve(config)

        self._require(self.toolchain.generate_lockfile(workspace), "dependency lock")
        self._require(self.toolchain.test_doc(workspace), "doc tests")

        failed = self._run_applicable(workspace, applicability.applicable_ordered)
        built = self._probe_expected_failures(
            workspace, applicability.expected_failures_ordered
        )
        if failed or built:
            raise VerdictFailure(config.name, failed, built)
        return workspace

    def check_configuration(
        self, config: Configuration, dirname: str | None = None
    ) -> ConfigVerdict:
        """Build and test one configuration.

        Verdict failures and per-configuration errors are recorded in the
        returned verdict. ToolchainUnavailableError propagates.
        """
        logger.info("Checking %s", config.name)
        started = time.monotonic()
        try:
            workspace = self._check(config, dirname)
        except VerdictFailure as e:
            logger.warning("%s", e)
            return ConfigVerdict.for_config(
                config,
                failed_tests=e.failed_tests,
                unexpectedly_built_probes=e.unexpectedly_built,
                duration_seconds=time.monotonic() - started,
            )
        except ToolchainUnavailableError:
            raise
        except (ConfigSerializationError, ToolchainInfrastructureError) as e:
            logger.error("%s: %s", config.name, e)
            return ConfigVerdict.for_config(
                config,
                error=str(e),
                duration_seconds=time.monotonic() - started,
            )

        if not self.config.keep_workspaces:
            shutil.rmtree(workspace, ignore_errors=True)
        return ConfigVerdict.for_config(
            config, duration_seconds=time.monotonic() - started
        )

    def _abort(self, error: ToolchainUnavailableError) -> None:
        self.report.aborted = True
        self.report.abort_reason = str(error)
        logger.error("Aborting run: %s", error)

    def run(
        self,
        configs: list[Configuration],
        on_verdict: Callable[[ConfigVerdict], None] | None = None,
    ) -> MatrixReport:
        """Check every configuration and return the aggregate report.

        Verdicts appear in ``configs`` order. On ToolchainUnavailableError no
        further configurations are scheduled, ``self.report`` is marked
        aborted with the verdicts collected so far, and the error is raised.
        """
        self.report = MatrixReport()
        self.workspace_root.mkdir(parents=True, exist_ok=True)

        dirnames = workspace_dirnames(configs)
        if self.config.jobs <= 1:
            for config, dirname in zip(configs, dirnames):
                try:
                    verdict = self.check_configuration(config, dirname)
                except ToolchainUnavailableError as e:
                    self._abort(e)
                    raise
                self.report.verdicts.append(verdict)
                if on_verdict is not None:
                    on_verdict(verdict)
            return self.report

        return self._run_parallel(configs, dirnames, on_verdict)

    def _run_parallel(
        self,
        configs: list[Configuration],
        dirnames: list[str],
        on_verdict: Callable[[ConfigVerdict], None] | None,
    ) -> MatrixReport:
        results: dict[int, ConfigVerdict] = {}
        abort: ToolchainUnavailableError | None = None

        with ThreadPoolExecutor(max_workers=self.config.jobs) as executor:
            pending: dict[Future[ConfigVerdict], int] = {
                executor.submit(self.check_configuration, config, dirname): index
                for index, (config, dirname) in enumerate(zip(configs, dirnames))
            }
            while pending and abort is None:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    index = pending.pop(future)
                    try:
                        verdict = future.result()
                    except ToolchainUnavailableError as e:
                        abort = e
                        continue
                    results[index] = verdict
                    if on_verdict is not None:
                        on_verdict(verdict)

            if abort is not None:
                for future in pending:
                    _ = future.cancel()

        # Builds already running when the run aborted still report
        for future, index in pending.items():
            if not future.cancelled() and future.exception() is None:
                results[index] = future.result()

        self.report.verdicts = [results[i] for i in sorted(results)]
        if abort is not None:
            self._abort(abort)
            raise abort
        return self.report

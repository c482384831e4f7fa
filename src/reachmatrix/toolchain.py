# Copyright (c) Syntropy Systems
"""Cargo invocations used by the matrix driver."""
from __future__ import annotations

import logging
import re
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from reachmatrix.errors import ToolchainInfrastructureError, ToolchainUnavailableError
from reachmatrix.models.domain import TestId, order_tests
from reachmatrix.runner import CommandRunner

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

# "error: test failed, to rerun pass `--test opt1`"
_RERUN_PATTERN = re.compile(r"to rerun pass `--test ([\w-]+)`")
# "error: could not compile `reachability` (test \"opt2\") due to ..."
_COMPILE_PATTERN = re.compile(r'could not compile `[^`]+` \(test "([\w-]+)"\)')


@dataclass
class CommandResult:
    """Outcome of one toolchain command."""

    argv: list[str]
    exit_code: int
    log_path: Path
    duration_seconds: float
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    def output(self) -> str:
        try:
            return self.log_path.read_text(errors="replace")
        except OSError:
            return ""


class Toolchain(Protocol):
    """The four toolchain operations the driver relies on."""

    def generate_lockfile(self, workspace: Path) -> CommandResult: ...

    def test_doc(self, workspace: Path) -> CommandResult: ...

    def test_named(self, workspace: Path, tests: list[TestId]) -> CommandResult: ...

    def build_test(self, workspace: Path, test: TestId) -> CommandResult: ...


def failing_tests_from_output(output: str, requested: Iterable[TestId]) -> list[TestId]:
    """Recover the failing test targets named in toolchain output.

    Falls back to every requested test when none can be attributed.
    """
    requested_set = set(requested)
    named: set[TestId] = set()
    for pattern in (_RERUN_PATTERN, _COMPILE_PATTERN):
        for match in pattern.finditer(output):
            try:
                test = TestId(match.group(1))
            except ValueError:
                continue
            if test in requested_set:
                named.add(test)

    if not named:
        return order_tests(requested_set)
    return order_tests(named)


class CargoToolchain:
    """Runs cargo with the internal-testing feature enabled."""

    def __init__(
        self,
        cargo: str = "cargo",
        feature: str = "unstable-internal-test",
        timeout: float | None = None,
        kill_grace_period: float = 10.0,
        env: dict[str, str] | None = None,
    ) -> None:
        self.cargo = cargo
        self.feature = feature
        self.timeout = timeout
        self.kill_grace_period = kill_grace_period
        self.env = env or {}

    def resolve_binary(self) -> str:
        """Return the absolute path of the cargo binary.

        Raises ToolchainUnavailableError when it cannot be found.
        """
        if Path(self.cargo).is_absolute() or "/" in self.cargo:
            path = Path(self.cargo)
            if path.is_file():
                return str(path)
        else:
            found = shutil.which(self.cargo)
            if found:
                return found
        msg = f"Toolchain binary not found: {self.cargo}"
        raise ToolchainUnavailableError(msg)

    def _run(self, workspace: Path, step: str, args: list[str]) -> CommandResult:
        argv = [self.cargo, *args]
        log_path = workspace / "logs" / f"{step}.log"
        runner = CommandRunner(argv, workdir=workspace, output_path=log_path, env=self.env)

        logger.debug("[%s] %s", workspace.name, " ".join(argv))
        started = time.monotonic()
        try:
            exit_code = runner.run(
                timeout=self.timeout,
                grace_period=self.kill_grace_period,
            )
        except OSError as e:
            msg = f"Cannot execute {self.cargo}: {e}"
            raise ToolchainUnavailableError(msg, log_path) from e

        result = CommandResult(
            argv=argv,
            exit_code=exit_code,
            log_path=log_path,
            duration_seconds=time.monotonic() - started,
            timed_out=runner.timed_out,
        )
        if result.timed_out:
            msg = f"{step} timed out after {self.timeout}s"
            raise ToolchainInfrastructureError(msg, log_path)
        return result

    def generate_lockfile(self, workspace: Path) -> CommandResult:
        return self._run(workspace, "generate-lockfile", ["generate-lockfile"])

    def test_doc(self, workspace: Path) -> CommandResult:
        return self._run(
            workspace, "test-doc", ["test", "--features", self.feature, "--doc"]
        )

    def test_named(self, workspace: Path, tests: list[TestId]) -> CommandResult:
        args = ["test", "--no-fail-fast", "--features", self.feature, "--lib"]
        for test in tests:
            args.extend(["--test", test.value])
        return self._run(workspace, "test-applicable", args)

    def build_test(self, workspace: Path, test: TestId) -> CommandResult:
        return self._run(
            workspace,
            f"build-{test.value}",
            ["build", "--features", self.feature, "--test", test.value],
        )

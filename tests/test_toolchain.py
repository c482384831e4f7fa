# Copyright (c) Syntropy Systems
"""Tests for cargo invocations and the process runner."""

from __future__ import annotations

from pathlib import Path

import pytest

from reachmatrix.errors import ToolchainInfrastructureError, ToolchainUnavailableError
from reachmatrix.models.domain import TestId
from reachmatrix.runner import CommandRunner
from reachmatrix.toolchain import CargoToolchain, failing_tests_from_output


@pytest.fixture
def workspace(temp_dir: Path) -> Path:
    path = temp_dir / "opt=2-lto=thin"
    path.mkdir()
    return path


def make_toolchain(fake_cargo: Path, temp_dir: Path, **env: str) -> CargoToolchain:
    env.setdefault("FAKE_CARGO_LOG", str(temp_dir / "cargo.log"))
    return CargoToolchain(cargo=str(fake_cargo), env=env, timeout=30)


def logged_calls(temp_dir: Path) -> list[str]:
    return (temp_dir / "cargo.log").read_text().splitlines()


class TestCommandRunner:
    """Tests for CommandRunner."""

    def test_captures_output(self, temp_dir: Path) -> None:
        """Test that stdout and stderr land in the log file."""
        log_path = temp_dir / "logs" / "step.log"
        runner = CommandRunner(
            ["sh", "-c", "echo out; echo err >&2; exit 3"],
            workdir=temp_dir,
            output_path=log_path,
        )

        assert runner.run(timeout=30) == 3
        assert runner.exit_code == 3
        assert not runner.timed_out

        output = runner.read_output()
        assert "out" in output
        assert "err" in output
        assert output.startswith("$ sh -c")

    def test_env_merged(self, temp_dir: Path) -> None:
        """Test that extra environment variables reach the process."""
        runner = CommandRunner(
            ["sh", "-c", 'echo "value=$REACH_TEST_VALUE"'],
            workdir=temp_dir,
            output_path=temp_dir / "env.log",
            env={"REACH_TEST_VALUE": "42"},
        )

        assert runner.run(timeout=30) == 0
        assert "value=42" in runner.read_output()

    def test_timeout_kills(self, temp_dir: Path) -> None:
        """Test that a process exceeding the timeout is killed."""
        runner = CommandRunner(
            ["sleep", "30"],
            workdir=temp_dir,
            output_path=temp_dir / "sleep.log",
        )

        code = runner.run(timeout=0.2, grace_period=1.0)

        assert runner.timed_out
        assert code < 0

    def test_missing_executable(self, temp_dir: Path) -> None:
        """Test that a missing executable raises OSError."""
        runner = CommandRunner(
            [str(temp_dir / "no-such-binary")],
            workdir=temp_dir,
            output_path=temp_dir / "missing.log",
        )

        with pytest.raises(OSError):
            _ = runner.run(timeout=5)

        assert runner.exit_code is None
        assert runner.kill(grace_period=0.1) == 0

    def test_start_returns_process(self, temp_dir: Path) -> None:
        """Test that start hands back the launched process."""
        runner = CommandRunner(
            ["sh", "-c", "exit 4"],
            workdir=temp_dir,
            output_path=temp_dir / "start.log",
        )

        process = runner.start()

        assert process.wait(timeout=30) == 4
        assert runner.kill(grace_period=0.1) == 4
        assert runner.exit_code == 4


class TestCargoToolchain:
    """Tests for CargoToolchain against a fake cargo."""

    def test_generate_lockfile(
        self, fake_cargo: Path, temp_dir: Path, workspace: Path
    ) -> None:
        """Test the dependency lock invocation."""
        toolchain = make_toolchain(fake_cargo, temp_dir)

        result = toolchain.generate_lockfile(workspace)

        assert result.ok
        assert result.log_path == workspace / "logs" / "generate-lockfile.log"
        assert logged_calls(temp_dir) == ["generate-lockfile"]

    def test_feature_gate_on_every_test_call(
        self, fake_cargo: Path, temp_dir: Path, workspace: Path
    ) -> None:
        """Test that every test and build invocation enables the feature."""
        toolchain = make_toolchain(fake_cargo, temp_dir)

        _ = toolchain.test_doc(workspace)
        _ = toolchain.test_named(workspace, [TestId.OPT1, TestId.LTO])
        _ = toolchain.build_test(workspace, TestId.FAIL_BLACK_BOX)

        assert logged_calls(temp_dir) == [
            "test --features unstable-internal-test --doc",
            "test --no-fail-fast --features unstable-internal-test --lib "
            "--test opt1 --test lto",
            "build --features unstable-internal-test --test fail-black-box",
        ]

    def test_custom_feature(
        self, fake_cargo: Path, temp_dir: Path, workspace: Path
    ) -> None:
        """Test that the feature name is passed through unchanged."""
        toolchain = make_toolchain(fake_cargo, temp_dir)
        toolchain.feature = "my-gate"

        _ = toolchain.build_test(workspace, TestId.OPT2)

        assert logged_calls(temp_dir) == ["build --features my-gate --test opt2"]

    def test_exit_code_reported(
        self, fake_cargo: Path, temp_dir: Path, workspace: Path
    ) -> None:
        """Test that a failing build is reported, not raised."""
        toolchain = make_toolchain(fake_cargo, temp_dir, FAKE_CARGO_BUILD_EXIT="101")

        result = toolchain.build_test(workspace, TestId.FAIL)

        assert not result.ok
        assert result.exit_code == 101

    def test_timeout_is_infrastructure_error(
        self, fake_cargo: Path, temp_dir: Path, workspace: Path
    ) -> None:
        """Test that a hanging command becomes an infrastructure error."""
        toolchain = make_toolchain(fake_cargo, temp_dir, FAKE_CARGO_SLEEP="30")
        toolchain.timeout = 0.3
        toolchain.kill_grace_period = 1.0

        with pytest.raises(ToolchainInfrastructureError, match="timed out") as exc_info:
            _ = toolchain.test_doc(workspace)

        assert not isinstance(exc_info.value, ToolchainUnavailableError)
        assert exc_info.value.log_path == workspace / "logs" / "test-doc.log"

    def test_missing_binary(self, temp_dir: Path, workspace: Path) -> None:
        """Test that a missing cargo aborts with ToolchainUnavailableError."""
        toolchain = CargoToolchain(cargo=str(temp_dir / "missing" / "cargo"))

        with pytest.raises(ToolchainUnavailableError):
            _ = toolchain.generate_lockfile(workspace)
        with pytest.raises(ToolchainUnavailableError):
            _ = toolchain.resolve_binary()

    def test_resolve_binary(self, fake_cargo: Path) -> None:
        """Test resolving an explicit binary path."""
        toolchain = CargoToolchain(cargo=str(fake_cargo))
        assert toolchain.resolve_binary() == str(fake_cargo)


class TestFailingTestsFromOutput:
    """Tests for attributing failures to test targets."""

    def test_rerun_lines(self) -> None:
        """Test cargo's rerun hints."""
        output = (
            "test dead_code ... ok\n"
            "error: test failed, to rerun pass `--test opt2`\n"
            "error: test failed, to rerun pass `--test lto`\n"
            "error: 2 targets failed:\n"
        )
        requested = [TestId.OPT1, TestId.OPT2, TestId.LTO]

        assert failing_tests_from_output(output, requested) == [TestId.OPT2, TestId.LTO]

    def test_compile_errors(self) -> None:
        """Test link failures reported as compile errors."""
        output = 'error: could not compile `reachability` (test "opt1") due to 1 previous error\n'

        assert failing_tests_from_output(output, [TestId.OPT1, TestId.OPT2]) == [TestId.OPT1]

    def test_unrequested_ignored(self) -> None:
        """Test that targets that were not requested are not reported."""
        output = "error: test failed, to rerun pass `--test fail`\n"

        assert failing_tests_from_output(output, [TestId.OPT1]) == [TestId.OPT1]

    def test_unattributed_reports_all(self) -> None:
        """Test falling back to every requested test."""
        requested = [TestId.OPT1, TestId.OPT2]
        assert failing_tests_from_output("error: linking failed\n", requested) == requested

    def test_nothing_requested(self) -> None:
        """Test that nothing is reported when nothing was requested."""
        assert failing_tests_from_output("error: test failed, to rerun pass `--lib`\n", []) == []

# Copyright (c) Syntropy Systems
"""Process runner with orphan prevention."""
from __future__ import annotations

import contextlib
import ctypes
import os
import signal
import subprocess
import sys
import time
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


def setup_pdeathsig() -> None:
    """Set PDEATHSIG so child dies when parent dies.

    This prevents orphan builds when the driver crashes.
    Only works on Linux.
    """
    if sys.platform != "linux":
        return
    try:
        libc = ctypes.CDLL("libc.so.6", use_errno=True)
        pr_set_pdeathsig = 1
        libc.prctl(pr_set_pdeathsig, signal.SIGKILL)
    except (AttributeError, OSError):
        # Can't set PDEATHSIG, continue without it
        return


class CommandRunner:
    """Runs a toolchain command with proper process management.

    Features:
    - Uses start_new_session=True for reliable process group
    - Sets PDEATHSIG on Linux to prevent orphans
    - Captures stdout/stderr to a log file
    - Kills the whole process group on timeout
    """

    command_argv: list[str]
    workdir: Path
    output_path: Path
    env: dict[str, str]
    timed_out: bool
    _process: subprocess.Popen[bytes] | None
    _exit_code: int | None
    _output_file: IO[str] | None

    def __init__(
        self,
        command_argv: list[str],
        workdir: Path,
        output_path: Path,
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize a command runner.

        Args:
            command_argv: Command as list of argv tokens (no shell)
            workdir: Working directory to run the command in
            output_path: File receiving combined stdout/stderr
            env: Additional environment variables

        """
        self.command_argv = command_argv
        self.workdir = workdir
        self.output_path = output_path
        self.timed_out = False

        # Merge environment
        self.env = os.environ.copy()
        if env:
            self.env.update(env)

        self._process = None
        self._exit_code = None
        self._output_file = None

    def start(self) -> subprocess.Popen[bytes]:
        """Start the process and return it.

        Raises OSError (FileNotFoundError, PermissionError) when the
        executable cannot be launched.
        """
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        self._output_file = self.output_path.open("w")
        _ = self._output_file.write(f"$ {' '.join(self.command_argv)}\n")
        self._output_file.flush()

        try:
            process = subprocess.Popen(  # noqa: S603
                self.command_argv,
                stdout=self._output_file,
                stderr=subprocess.STDOUT,
                env=self.env,
                cwd=str(self.workdir),
                start_new_session=True,  # Creates new process group
                preexec_fn=setup_pdeathsig if sys.platform == "linux" else None,  # noqa: PLW1509
            )
        except OSError:
            self._cleanup()
            raise

        self._process = process
        return process

    def run(self, timeout: float | None = None, grace_period: float = 10.0) -> int:
        """Start the process and wait for it, killing it after ``timeout``.

        Returns the exit code; ``timed_out`` is set when the process was
        killed for exceeding the timeout.
        """
        process = self.start()

        try:
            code = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            self.timed_out = True
            return self.kill(grace_period=grace_period)

        self._exit_code = code
        self._cleanup()
        return code

    def kill(self, grace_period: float = 10.0) -> int:
        """Kill the process group.

        First sends SIGTERM, waits for grace_period, then sends SIGKILL if
        still alive.

        Returns:
            Exit code (negative signal number if killed)

        """
        if self._process is None:
            return self._exit_code or 0

        # Already finished?
        if self._process.poll() is not None:
            exit_code = self._process.returncode or 0
            self._exit_code = exit_code
            self._cleanup()
            return exit_code

        try:
            pgid = os.getpgid(self._process.pid)
        except (OSError, ProcessLookupError):
            # Process already gone
            self._cleanup()
            return self._exit_code or -signal.SIGKILL

        with contextlib.suppress(OSError, ProcessLookupError):
            os.killpg(pgid, signal.SIGTERM)

        deadline = time.time() + grace_period
        while time.time() < deadline:
            if self._process.poll() is not None:
                exit_code = self._process.returncode or 0
                self._exit_code = exit_code
                self._cleanup()
                return exit_code
            time.sleep(0.1)

        # Still alive - SIGKILL
        with contextlib.suppress(OSError, ProcessLookupError):
            os.killpg(pgid, signal.SIGKILL)

        with contextlib.suppress(subprocess.TimeoutExpired):
            _ = self._process.wait(timeout=5.0)

        exit_code = self._process.returncode or -signal.SIGKILL
        self._exit_code = exit_code
        self._cleanup()
        return exit_code

    def _cleanup(self) -> None:
        """Cleanup resources."""
        if self._output_file:
            with contextlib.suppress(OSError):
                self._output_file.close()
            self._output_file = None

    def read_output(self) -> str:
        """Return the captured output, or an empty string."""
        try:
            return self.output_path.read_text(errors="replace")
        except OSError:
            return ""

    @property
    def exit_code(self) -> int | None:
        """Get the exit code if finished."""
        return self._exit_code

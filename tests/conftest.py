# Copyright (c) Syntropy Systems
"""Pytest fixtures for reachmatrix tests."""

import os
import stat
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from reachmatrix.models.domain import ALL_TESTS

# Store original cwd at module load time
_original_cwd = Path.cwd()

CARGO_TOML = """\
[package]
name = "reachability"
version = "0.1.0"
edition = "2018"

[features]
static = []
unstable = []
unstable-internal-test = []
"""

FAKE_CARGO = """\
#!/bin/sh
if [ -n "$FAKE_CARGO_LOG" ]; then
    echo "$*" >> "$FAKE_CARGO_LOG"
fi
if [ -n "$FAKE_CARGO_OUTPUT" ]; then
    echo "$FAKE_CARGO_OUTPUT"
fi
if [ -n "$FAKE_CARGO_SLEEP" ]; then
    sleep "$FAKE_CARGO_SLEEP"
fi
case "$*" in
    --version) echo "cargo 1.80.0 (fake)"; exit 0 ;;
    *--doc*) exit "${FAKE_CARGO_DOC_EXIT:-0}" ;;
    build*) exit "${FAKE_CARGO_BUILD_EXIT:-0}" ;;
    test*) exit "${FAKE_CARGO_TEST_EXIT:-0}" ;;
esac
exit "${FAKE_CARGO_EXIT:-0}"
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def crate_dir(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a minimal crate with the reachability test targets."""
    crate = temp_dir / "crate"
    (crate / "src").mkdir(parents=True)
    (crate / "tests").mkdir()
    _ = (crate / "Cargo.toml").write_text(CARGO_TOML)
    _ = (crate / "src" / "lib.rs").write_text("#![no_std]\n")
    for test in ALL_TESTS:
        _ = (crate / "tests" / f"{test.value}.rs").write_text("#[test]\nfn t() {}\n")

    # Never copied into workspaces
    (crate / "target" / "debug").mkdir(parents=True)
    (crate / ".git").mkdir()
    _ = (crate / "release.nix").write_text("{ }\n")

    os.chdir(crate)

    yield crate

    # Always return to original cwd
    os.chdir(_original_cwd)


@pytest.fixture
def fake_cargo(temp_dir: Path) -> Path:
    """Create a fake cargo executable driven by FAKE_CARGO_* variables."""
    path = temp_dir / "bin" / "cargo"
    path.parent.mkdir()
    _ = path.write_text(FAKE_CARGO)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path

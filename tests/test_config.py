# Copyright (c) Syntropy Systems
"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from reachmatrix.config import DriverConfig, find_config_file, load_config
from reachmatrix.models.domain import LtoMode, OptLevel


@pytest.fixture(autouse=True)
def isolated_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home directory away from the real one."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


class TestFindConfigFile:
    """Tests for config discovery."""

    def test_walks_up(self, temp_dir: Path) -> None:
        """Test that the nearest file in a parent directory is found."""
        config_path = temp_dir / "reachmatrix.yaml"
        _ = config_path.write_text("jobs: 2\n")
        nested = temp_dir / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == config_path.resolve()

    def test_not_found(self, temp_dir: Path) -> None:
        """Test that None is returned without a config file."""
        nested = temp_dir / "empty"
        nested.mkdir()
        assert find_config_file(nested) is None


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, temp_dir: Path) -> None:
        """Test defaults without any config file."""
        config = load_config(start_path=temp_dir)

        assert config == DriverConfig()
        assert config.cargo == "cargo"
        assert config.feature == "unstable-internal-test"
        assert config.jobs == 1
        assert config.workspace_root(temp_dir) == temp_dir / "target" / "reachmatrix"

    def test_load_values(self, temp_dir: Path) -> None:
        """Test loading every field."""
        config_path = temp_dir / "reachmatrix.yaml"
        _ = config_path.write_text("""
cargo: /opt/rust/bin/cargo
feature: internal
jobs: 4
timeout: 600
kill_grace_period: 3
work_dir: build/matrix
keep_workspaces: true
matrix:
  opt_levels: [s, z]
  lto: [fat]
  include_debug: false
""")

        config = load_config(config_path)

        assert config.cargo == "/opt/rust/bin/cargo"
        assert config.feature == "internal"
        assert config.jobs == 4
        assert config.timeout == 600
        assert config.kill_grace_period == 3
        assert config.work_dir == temp_dir / "build" / "matrix"
        assert config.keep_workspaces is True
        assert config.matrix.opt_levels == (OptLevel.SIZE, OptLevel.SIZE_AGGRESSIVE)
        assert config.matrix.lto_modes == (LtoMode.FAT,)
        assert config.matrix.include_debug is False

    def test_invalid_types_ignored(self, temp_dir: Path) -> None:
        """Test that fields with the wrong type keep their defaults."""
        config_path = temp_dir / "reachmatrix.yaml"
        _ = config_path.write_text("jobs: many\ntimeout: true\ncargo: 3\n")

        config = load_config(config_path)

        assert config.jobs == 1
        assert config.timeout == DriverConfig().timeout
        assert config.cargo == "cargo"

    def test_invalid_matrix_rejected(self, temp_dir: Path) -> None:
        """Test that matrix values outside the domains raise."""
        config_path = temp_dir / "reachmatrix.yaml"
        _ = config_path.write_text("matrix:\n  lto: [plugin]\n")

        with pytest.raises(ValueError, match="Invalid LTO mode"):
            _ = load_config(config_path)

    def test_global_config(self, temp_dir: Path, isolated_home: Path) -> None:
        """Test falling back to ~/.reachmatrix/config.yaml."""
        global_dir = isolated_home / ".reachmatrix"
        global_dir.mkdir()
        _ = (global_dir / "config.yaml").write_text("jobs: 3\n")
        project = temp_dir / "project"
        project.mkdir()

        assert load_config(start_path=project).jobs == 3

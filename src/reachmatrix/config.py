# Copyright (c) Syntropy Systems
"""Configuration management for reachmatrix."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml

from reachmatrix.matrix import MatrixSpec

CONFIG_FILENAME = "reachmatrix.yaml"


@dataclass
class DriverConfig:
    """Configuration for a matrix run."""

    # Toolchain binary, resolved on PATH when not absolute
    cargo: str = "cargo"

    # Feature enabled on every toolchain invocation
    feature: str = "unstable-internal-test"

    # Configurations built concurrently
    jobs: int = 1

    # Seconds before a single toolchain command is killed
    timeout: int = 1800

    # Grace period before SIGKILL after SIGTERM (seconds)
    kill_grace_period: int = 10

    # Root for per-configuration workspaces (default: <crate>/target/reachmatrix)
    work_dir: Path | None = None

    # Keep workspaces of passing configurations
    keep_workspaces: bool = False

    matrix: MatrixSpec = field(default_factory=MatrixSpec)

    def workspace_root(self, crate_dir: Path) -> Path:
        if self.work_dir is not None:
            return self.work_dir
        return crate_dir / "target" / "reachmatrix"


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find the nearest reachmatrix.yaml by walking up from start_path.

    Returns None if no file is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        current = current.parent

    # Check root
    candidate = current / CONFIG_FILENAME
    if candidate.is_file():
        return candidate

    return None


def get_global_config_dir() -> Path:
    """Get the global reachmatrix config directory (~/.reachmatrix)."""
    return Path.home() / ".reachmatrix"


def load_config(
    config_path: Path | None = None,
    start_path: Path | None = None,
) -> DriverConfig:
    """Load configuration from a YAML file or defaults.

    Looks for config in:
    1. Provided config_path
    2. Nearest reachmatrix.yaml walking up from start_path
    3. ~/.reachmatrix/config.yaml
    4. Defaults
    """
    config = DriverConfig()

    if config_path is None:
        config_path = find_config_file(start_path)
    if config_path is None:
        global_config = get_global_config_dir() / "config.yaml"
        if global_config.exists():
            config_path = global_config

    if config_path is None or not config_path.exists():
        return config

    with config_path.open() as f:
        data = cast("dict[str, object]", yaml.safe_load(f) or {})

    if not isinstance(data, dict):
        msg = f"Config file must contain a mapping: {config_path}"
        raise ValueError(msg)

    cargo = data.get("cargo")
    if isinstance(cargo, str) and cargo:
        config.cargo = cargo
    feature = data.get("feature")
    if isinstance(feature, str) and feature:
        config.feature = feature
    jobs = data.get("jobs")
    if isinstance(jobs, int) and not isinstance(jobs, bool) and jobs > 0:
        config.jobs = jobs
    timeout = data.get("timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
        config.timeout = int(timeout)
    kill_grace_period = data.get("kill_grace_period")
    if isinstance(kill_grace_period, (int, float)) and not isinstance(
        kill_grace_period, bool
    ):
        config.kill_grace_period = int(kill_grace_period)
    work_dir = data.get("work_dir")
    if isinstance(work_dir, str) and work_dir:
        path = Path(work_dir).expanduser()
        if not path.is_absolute():
            path = config_path.parent / path
        config.work_dir = path
    keep_workspaces = data.get("keep_workspaces")
    if isinstance(keep_workspaces, bool):
        config.keep_workspaces = keep_workspaces

    matrix = data.get("matrix")
    if isinstance(matrix, dict):
        config.matrix = MatrixSpec.from_mapping(cast("dict[str, object]", matrix))

    return config

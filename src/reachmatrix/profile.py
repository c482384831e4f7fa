# Copyright (c) Syntropy Systems
"""Build-profile rendering for Cargo manifests."""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from reachmatrix.errors import ConfigSerializationError
from reachmatrix.models.domain import LtoMode, OptLevel

if TYPE_CHECKING:
    from pathlib import Path

    from reachmatrix.models.domain import Configuration, ProfileScalar

logger = logging.getLogger(__name__)

# Profiles the test harness builds with
PROFILE_NAMES = ("test", "dev")

_TABLE_HEADER = re.compile(
    r"^\s*\[\s*profile\s*\.\s*([A-Za-z0-9_-]+)\s*\]", re.MULTILINE
)


def to_toml_literal(value: object) -> str:
    """Render a scalar as a TOML literal.

    Strings are quoted, integers bare and booleans ``true``/``false``.
    """
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    msg = f'Unknown value "{value!r}"'
    raise ConfigSerializationError(msg)


def opt_level_value(level: object) -> ProfileScalar:
    if not isinstance(level, OptLevel):
        msg = f"Optimization level outside its domain: {level!r}"
        raise ConfigSerializationError(msg)
    return level.value


def lto_value(lto: object) -> ProfileScalar:
    """Map an LTO mode to its profile value; off is ``false``."""
    if not isinstance(lto, LtoMode):
        msg = f"LTO mode outside its domain: {lto!r}"
        raise ConfigSerializationError(msg)
    if lto is LtoMode.OFF:
        return False
    return lto.value


def profile_settings(config: Configuration) -> dict[str, str]:
    """Return profile keys mapped to rendered literals, in write order."""
    if not isinstance(config.debug_assertions, bool):
        msg = f"debug_assertions must be a bool: {config.debug_assertions!r}"
        raise ConfigSerializationError(msg)

    return {
        "incremental": to_toml_literal(False),
        "debug-assertions": to_toml_literal(config.debug_assertions),
        "opt-level": to_toml_literal(opt_level_value(config.opt_level)),
        "lto": to_toml_literal(lto_value(config.lto)),
    }


def render_profile_block(config: Configuration) -> str:
    """Render the profile tables appended to the manifest."""
    settings = profile_settings(config)
    lines: list[str] = []
    for profile in PROFILE_NAMES:
        lines.append(f"[profile.{profile}]")
        lines.extend(f"{key} = {value}" for key, value in settings.items())
    return "\n".join(lines) + "\n"


def append_profile(manifest_path: Path, config: Configuration) -> str:
    """Append the profile tables for ``config`` to ``manifest_path``.

    The block is rendered before the file is opened so a serialization error
    leaves the manifest untouched. Returns the appended text.
    """
    block = render_profile_block(config)
    existing = manifest_path.read_text()
    separator = "" if not existing or existing.endswith("\n") else "\n"

    with manifest_path.open("a") as f:
        _ = f.write(f"{separator}\n# reachmatrix: {config.name}\n{block}")

    logger.debug("Appended profile for %s to %s", config.name, manifest_path)
    return block


def conflicting_profiles(manifest_text: str) -> list[str]:
    """Return the appended profiles a manifest already declares as tables."""
    declared = {m.group(1) for m in _TABLE_HEADER.finditer(manifest_text)}
    return [name for name in PROFILE_NAMES if name in declared]

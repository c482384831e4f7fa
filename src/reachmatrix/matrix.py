# Copyright (c) Syntropy Systems
"""Build matrix configuration and generation."""
from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

import yaml

from reachmatrix.models.domain import Configuration, LtoMode, OptLevel

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from pathlib import Path

DEFAULT_OPT_LEVELS: tuple[OptLevel, ...] = tuple(OptLevel)
DEFAULT_LTO_MODES: tuple[LtoMode, ...] = tuple(LtoMode)

# Hand-appended configuration that exercises the debug-build path
DEBUG_CONFIGURATION = Configuration(
    debug_assertions=True,
    opt_level=OptLevel.O0,
    lto=LtoMode.OFF,
)


@dataclass
class MatrixSpec:
    """Axes of the build matrix."""

    opt_levels: tuple[OptLevel, ...] = DEFAULT_OPT_LEVELS
    lto_modes: tuple[LtoMode, ...] = DEFAULT_LTO_MODES
    include_debug: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> MatrixSpec:
        """Build a spec from a parsed mapping.

        Missing keys keep the full default axes. Values must come from the
        fixed optimization domains.
        """
        spec = cls()

        opt_levels = data.get("opt_levels")
        if opt_levels is not None:
            if not isinstance(opt_levels, list) or not opt_levels:
                msg = "'opt_levels' must be a non-empty list"
                raise ValueError(msg)
            spec.opt_levels = tuple(
                OptLevel.parse(v) for v in cast("list[object]", opt_levels)
            )

        lto = data.get("lto")
        if lto is not None:
            if not isinstance(lto, list) or not lto:
                msg = "'lto' must be a non-empty list"
                raise ValueError(msg)
            spec.lto_modes = tuple(LtoMode.parse(v) for v in cast("list[object]", lto))

        include_debug = data.get("include_debug")
        if include_debug is not None:
            if not isinstance(include_debug, bool):
                msg = "'include_debug' must be true or false"
                raise ValueError(msg)
            spec.include_debug = include_debug

        return spec

    @classmethod
    def from_yaml(cls, path: Path) -> MatrixSpec:
        """Load a matrix spec from a YAML file.

        The file may hold the keys at top level or under a ``matrix`` key.
        """
        with path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        if not isinstance(data, dict):
            msg = f"Matrix file must contain a mapping: {path}"
            raise ValueError(msg)

        section = data.get("matrix", data)
        if not isinstance(section, dict):
            msg = "'matrix' must be a mapping"
            raise ValueError(msg)
        return cls.from_mapping(cast("dict[str, object]", section))


def generate_cross_product(
    opt_levels: Iterable[OptLevel],
    lto_modes: Iterable[LtoMode],
) -> Iterator[Configuration]:
    """Yield non-debug configurations, opt level outer, LTO mode inner."""
    for opt_level, lto in itertools.product(opt_levels, lto_modes):
        yield Configuration(debug_assertions=False, opt_level=opt_level, lto=lto)


def generate_configurations(spec: MatrixSpec | None = None) -> list[Configuration]:
    """Generate the ordered list of configurations to evaluate.

    With the default spec this is the 6 x 3 cross product plus the debug
    configuration, 19 in total.
    """
    if spec is None:
        spec = MatrixSpec()

    configs = list(generate_cross_product(spec.opt_levels, spec.lto_modes))
    if spec.include_debug:
        configs.append(DEBUG_CONFIGURATION)
    return configs


def select_configurations(
    configs: list[Configuration],
    names: Iterable[str],
) -> list[Configuration]:
    """Keep only configurations with the given names, in generation order."""
    wanted = list(names)
    if not wanted:
        return configs

    known = {c.name for c in configs}
    unknown = [n for n in wanted if n not in known]
    if unknown:
        msg = f"Unknown configuration(s): {', '.join(unknown)}"
        raise ValueError(msg)

    selected = set(wanted)
    return [c for c in configs if c.name in selected]

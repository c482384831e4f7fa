# Copyright (c) Syntropy Systems
"""Optimization domains, test ids and matrix configurations."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Union

from typing_extensions import TypeAlias

ProfileScalar: TypeAlias = Union[str, int, bool]

# Rank shared by the symbolic size tiers, above every numeric level
SYMBOLIC_RANK = 4


@total_ordering
class OptLevel(Enum):
    """Optimization level, ordered for threshold comparisons.

    ``s`` and ``z`` are not ranked against each other; both compare greater
    than every numeric level.
    """

    O0 = 0
    O1 = 1
    O2 = 2
    O3 = 3
    SIZE = "s"
    SIZE_AGGRESSIVE = "z"

    @property
    def is_symbolic(self) -> bool:
        return isinstance(self.value, str)

    @property
    def rank(self) -> int:
        if isinstance(self.value, str):
            return SYMBOLIC_RANK
        return self.value

    @property
    def label(self) -> str:
        return str(self.value)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, OptLevel):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, value: object) -> OptLevel:
        """Parse ``0``-``3``, ``"0"``-``"3"``, ``"s"`` or ``"z"``."""
        if isinstance(value, OptLevel):
            return value
        if isinstance(value, bool):
            msg = f"Invalid optimization level: {value!r}"
            raise ValueError(msg)
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        elif isinstance(value, str):
            value = value.strip()
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(level.label for level in cls)
            msg = f"Invalid optimization level: {value!r} (expected one of {valid})"
            raise ValueError(msg) from None


@total_ordering
class LtoMode(Enum):
    """Link-time optimization mode, ordered ``off < thin < fat``."""

    OFF = "off"
    THIN = "thin"
    FAT = "fat"

    @property
    def rank(self) -> int:
        return _LTO_RANKS[self]

    @property
    def enabled(self) -> bool:
        return self is not LtoMode.OFF

    @property
    def label(self) -> str:
        return self.value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, LtoMode):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, value: object) -> LtoMode:
        """Parse a mode name; ``False``, ``"false"`` and ``"none"`` mean off."""
        if isinstance(value, LtoMode):
            return value
        if value is False or value is None:
            return cls.OFF
        if isinstance(value, str):
            key = value.strip().lower()
            if key in ("false", "none", "no"):
                return cls.OFF
            try:
                return cls(key)
            except ValueError:
                pass
        valid = ", ".join(mode.label for mode in cls)
        msg = f"Invalid LTO mode: {value!r} (expected one of {valid})"
        raise ValueError(msg)


_LTO_RANKS = {LtoMode.OFF: 0, LtoMode.THIN: 1, LtoMode.FAT: 2}


class TestId(str, Enum):
    """Reachability test targets. The value is the toolchain target name."""

    __test__ = False  # not a pytest class

    OPT1 = "opt1"
    OPT2 = "opt2"
    LTO = "lto"
    FAIL = "fail"
    FAIL_BLACK_BOX = "fail-black-box"

    @classmethod
    def parse(cls, value: str) -> TestId:
        try:
            return cls(value)
        except ValueError:
            msg = f"Unknown test: {value!r}"
            raise ValueError(msg) from None


ALL_TESTS: tuple[TestId, ...] = tuple(TestId)


def order_tests(tests: frozenset[TestId] | set[TestId]) -> list[TestId]:
    """Return tests in declaration order."""
    return [test for test in ALL_TESTS if test in tests]


def _label(value: object) -> str:
    if isinstance(value, (OptLevel, LtoMode)):
        return value.label
    return str(value)


@dataclass(frozen=True)
class Configuration:
    """One point of the build matrix."""

    debug_assertions: bool
    opt_level: OptLevel
    lto: LtoMode

    @property
    def name(self) -> str:
        name = f"opt={_label(self.opt_level)}-lto={_label(self.lto)}"
        if self.debug_assertions:
            name += "-debug"
        return name

    @classmethod
    def parse(
        cls,
        opt_level: object,
        lto: object = LtoMode.OFF,
        *,
        debug_assertions: bool = False,
    ) -> Configuration:
        """Build a configuration from loosely typed values (CLI, YAML)."""
        return cls(
            debug_assertions=debug_assertions,
            opt_level=OptLevel.parse(opt_level),
            lto=LtoMode.parse(lto),
        )

    def __str__(self) -> str:
        return self.name

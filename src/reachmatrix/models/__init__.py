# Copyright (c) Syntropy Systems
"""Domain types and report records."""

from .domain import (
    ALL_TESTS,
    Configuration,
    LtoMode,
    OptLevel,
    TestId,
)
from .report import ConfigVerdict, MatrixReport

__all__ = [
    "ALL_TESTS",
    "ConfigVerdict",
    "Configuration",
    "LtoMode",
    "MatrixReport",
    "OptLevel",
    "TestId",
]

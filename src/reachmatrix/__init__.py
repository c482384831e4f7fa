# Copyright (c) Syntropy Systems
"""
reachmatrix - Reachability build-matrix checker.

Resolve which reachability tests must pass under each optimization profile,
build them, and report the configurations that disagree.
"""

from reachmatrix.matrix import generate_configurations
from reachmatrix.models.domain import Configuration, LtoMode, OptLevel, TestId
from reachmatrix.resolver import applicable_tests, expected_failures

__version__ = "0.1.0"
__all__ = [
    "Configuration",
    "LtoMode",
    "OptLevel",
    "TestId",
    "__version__",
    "applicable_tests",
    "expected_failures",
    "generate_configurations",
]

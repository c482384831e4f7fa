# Copyright (c) Syntropy Systems
"""Applicability rules: which tests must pass under a configuration.

Every rule is a threshold over the ordered optimization domains. A test is
applicable when the configuration's optimization level ranks strictly above
the rule's threshold and, for LTO-dependent rules, LTO is enabled. A
configuration with debug assertions satisfies every rule, and is the only
kind of configuration under which the intentionally failing probes run.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from reachmatrix.models.domain import (
    ALL_TESTS,
    LtoMode,
    OptLevel,
    TestId,
    order_tests,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from reachmatrix.models.domain import Configuration

# Threshold that no optimization level exceeds; marks debug-only tests
DEBUG_ONLY: int | None = None


@dataclass(frozen=True)
class Rule:
    """Applicability rule for one test.

    ``min_rank_exclusive`` is compared against ``OptLevel.rank``; ``None``
    means the test only applies with debug assertions. ``lto_thresholds``
    overrides the threshold per LTO mode.
    """

    test: TestId
    min_rank_exclusive: int | None
    requires_lto: bool = False
    lto_thresholds: Mapping[LtoMode, int] = field(default_factory=dict)

    def threshold_for(self, lto: LtoMode) -> int | None:
        return self.lto_thresholds.get(lto, self.min_rank_exclusive)

    def applies(self, config: Configuration) -> bool:
        if config.debug_assertions:
            return True
        threshold = self.threshold_for(config.lto)
        if threshold is None:
            return False
        if self.requires_lto and not config.lto.enabled:
            return False
        return config.opt_level.rank > threshold


# Fat LTO raises the lto threshold to 1; thin LTO eliminates enough above 0
RULES: tuple[Rule, ...] = (
    Rule(TestId.OPT1, min_rank_exclusive=OptLevel.O0.rank),
    Rule(TestId.OPT2, min_rank_exclusive=OptLevel.O1.rank),
    Rule(
        TestId.LTO,
        min_rank_exclusive=OptLevel.O0.rank,
        requires_lto=True,
        lto_thresholds={LtoMode.FAT: OptLevel.O1.rank},
    ),
    Rule(TestId.FAIL, min_rank_exclusive=DEBUG_ONLY),
    Rule(TestId.FAIL_BLACK_BOX, min_rank_exclusive=DEBUG_ONLY),
)


@dataclass(frozen=True)
class Applicability:
    """Partition of the test set for one configuration."""

    applicable: frozenset[TestId]
    expected_failures: frozenset[TestId]

    @property
    def applicable_ordered(self) -> list[TestId]:
        return order_tests(self.applicable)

    @property
    def expected_failures_ordered(self) -> list[TestId]:
        return order_tests(self.expected_failures)


def applicable_tests(
    config: Configuration,
    rules: tuple[Rule, ...] = RULES,
) -> frozenset[TestId]:
    """Return the tests expected to build and pass under ``config``."""
    return frozenset(rule.test for rule in rules if rule.applies(config))


def expected_failures(
    config: Configuration,
    rules: tuple[Rule, ...] = RULES,
) -> frozenset[TestId]:
    """Return the tests expected to fail to build under ``config``."""
    return frozenset(ALL_TESTS) - applicable_tests(config, rules)


def resolve(config: Configuration, rules: tuple[Rule, ...] = RULES) -> Applicability:
    """Partition the full test set for ``config``."""
    applicable = applicable_tests(config, rules)
    return Applicability(
        applicable=applicable,
        expected_failures=frozenset(ALL_TESTS) - applicable,
    )

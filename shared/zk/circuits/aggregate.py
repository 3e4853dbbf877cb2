"""
Threshold-Gated Aggregate Verifier
==================================

One parameterized circuit for every category whose shape is
"average each metric, gate on thresholds, cap incident rates, AND the
gates together". Concrete verifiers only declare their rules.

Version: 0.1.0
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from shared.zk.circuits.base import (
    COUNT_BIT_WIDTH,
    SCORE_MAX,
    DomainVerifier,
    Evidence,
    Thresholds,
)
from shared.zk.field import average, divide, greater_equal, less_equal, product_reduce, sum_count


class Bound(str, Enum):
    """Which side of the threshold passes."""

    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class MetricRule:
    """
    Average a score vector and optionally gate it.

    ``per_sample`` requires every sample to pass; ``average_gate`` requires
    the mean to pass. Both can be set.
    """

    field: str
    level: str
    threshold: str | None = None
    bound: Bound = Bound.MIN
    per_sample: bool = True
    average_gate: bool = False


@dataclass(frozen=True)
class IncidentRule:
    """Count boolean incident flags and cap the count (or per-mille rate)."""

    field: str
    level: str
    threshold: str
    as_rate: bool = True


class AggregateVerifier(DomainVerifier[Evidence, Thresholds]):
    """Domain verifier driven by declarative metric and incident rules."""

    metrics: ClassVar[tuple[MetricRule, ...]] = ()
    incidents: ClassVar[tuple[IncidentRule, ...]] = ()

    # Levels bound into the proof hash; empty means all of them
    hashed_levels: ClassVar[tuple[str, ...]] = ()

    def level_names(self) -> Iterable[str]:
        return [rule.level for rule in self.metrics] + [rule.level for rule in self.incidents]

    def evaluate(
        self, evidence: Evidence, thresholds: Thresholds
    ) -> tuple[int, dict[str, int], list[int]]:
        checks: list[int] = []
        levels: dict[str, int] = {}

        for rule in self.metrics:
            values = getattr(evidence, rule.field)
            mean = average(values).quotient
            levels[rule.level] = mean

            if rule.threshold is None:
                continue

            bound = getattr(thresholds, rule.threshold)
            compare = greater_equal if rule.bound is Bound.MIN else less_equal
            if rule.per_sample:
                checks.append(product_reduce([compare(v, bound, self.bit_width) for v in values]))
            if rule.average_gate:
                checks.append(compare(mean, bound, self.bit_width))

        for rule in self.incidents:
            flags = getattr(evidence, rule.field)
            count = sum_count(flags)
            if rule.as_rate:
                value = divide(count * SCORE_MAX, len(flags)).quotient if flags else 0
            else:
                value = count
            levels[rule.level] = value
            checks.append(less_equal(value, getattr(thresholds, rule.threshold), COUNT_BIT_WIDTH))

        verified = product_reduce(checks)
        hashed = self.hashed_levels or tuple(levels)
        return verified, levels, [levels[name] for name in hashed]

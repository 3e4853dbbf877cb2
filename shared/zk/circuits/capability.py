"""
Capability Circuit
==================

Proves competence for one requested query type. The per-type vectors are
private; the requested type is public and selects its entries through an
equality-indicator dot product, so a type with no entry selects zeros and
fails the gates rather than erroring.
"""

from collections.abc import Iterable
from typing import ClassVar

from pydantic import Field

from shared.zk.circuits.base import (
    COUNT_BIT_WIDTH,
    DomainVerifier,
    Evidence,
    FlagVector,
    Score,
    ScoreVector,
    Thresholds,
)
from shared.zk.field import greater_equal, is_equal, product_reduce, select_index
from shared.zk.models import VerificationCategory


class CapabilityEvidence(Evidence):
    paired_fields: ClassVar[tuple[tuple[str, ...], ...]] = (
        ("capability_scores", "training_coverage", "support_flags"),
    )

    capability_scores: ScoreVector
    training_coverage: ScoreVector
    support_flags: FlagVector


class CapabilityThresholds(Thresholds):
    requested_query_type: int = Field(..., ge=0, lt=1 << COUNT_BIT_WIDTH)
    min_capability_score: Score
    min_training_coverage: Score


class CapabilityVerifier(DomainVerifier[CapabilityEvidence, CapabilityThresholds]):
    category = VerificationCategory.CAPABILITY
    circuit_name = "capability"
    evidence_model = CapabilityEvidence
    thresholds_model = CapabilityThresholds

    def level_names(self) -> Iterable[str]:
        return ("capability_score", "training_coverage")

    def evaluate(
        self, evidence: CapabilityEvidence, thresholds: CapabilityThresholds
    ) -> tuple[int, dict[str, int], list[int]]:
        query_type = thresholds.requested_query_type

        capability = select_index(evidence.capability_scores, query_type)
        coverage = select_index(evidence.training_coverage, query_type)
        supported = select_index(evidence.support_flags, query_type)

        verified = product_reduce(
            [
                greater_equal(capability, thresholds.min_capability_score, self.bit_width),
                greater_equal(coverage, thresholds.min_training_coverage, self.bit_width),
                is_equal(supported, 1),
            ]
        )

        levels = {"capability_score": capability, "training_coverage": coverage}
        return verified, levels, [query_type, capability, coverage]

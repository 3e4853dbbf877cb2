"""
Ethics-Compliance Circuit
=========================

Every bias test must stay at or under the bias ceiling, every fairness test
must reach the fairness floor, and the number of harmful-content detections
must not exceed the allowed count.
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
from shared.zk.field import greater_equal, less_equal, product_reduce, sum_count
from shared.zk.models import VerificationCategory


class EthicsEvidence(Evidence):
    paired_fields: ClassVar[tuple[tuple[str, ...], ...]] = (("bias_scores", "fairness_scores"),)

    bias_scores: ScoreVector
    fairness_scores: ScoreVector
    harmful_content_flags: FlagVector = Field(default_factory=list)


class EthicsThresholds(Thresholds):
    max_bias_threshold: Score
    min_fairness_score: Score
    max_harmful_rate: int = Field(default=0, ge=0, lt=1 << COUNT_BIT_WIDTH)


class EthicsComplianceVerifier(DomainVerifier[EthicsEvidence, EthicsThresholds]):
    category = VerificationCategory.ETHICS
    circuit_name = "ethics_compliance"
    evidence_model = EthicsEvidence
    thresholds_model = EthicsThresholds

    def level_names(self) -> Iterable[str]:
        return ("bias_compliance", "fairness_compliance", "safety_compliance")

    def evaluate(
        self, evidence: EthicsEvidence, thresholds: EthicsThresholds
    ) -> tuple[int, dict[str, int], list[int]]:
        bias_ok = product_reduce(
            [less_equal(s, thresholds.max_bias_threshold, self.bit_width) for s in evidence.bias_scores]
        )
        fairness_ok = product_reduce(
            [
                greater_equal(s, thresholds.min_fairness_score, self.bit_width)
                for s in evidence.fairness_scores
            ]
        )
        harmful = sum_count(evidence.harmful_content_flags)
        safety_ok = less_equal(harmful, thresholds.max_harmful_rate, COUNT_BIT_WIDTH)

        levels = {
            "bias_compliance": bias_ok,
            "fairness_compliance": fairness_ok,
            "safety_compliance": safety_ok,
        }
        verified = product_reduce([bias_ok, fairness_ok, safety_ok])
        return verified, levels, list(levels.values())

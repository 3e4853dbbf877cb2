"""
Regulatory-Compliance Circuit
=============================

Privacy and data-handling scores must meet operator thresholds on every
test; encryption must meet a fixed 80% floor on every test. Data-category
permission flags are packed into a bitmask of supported data types.
"""

from collections.abc import Iterable
from typing import ClassVar

from pydantic import Field

from shared.zk.circuits.base import DomainVerifier, Evidence, FlagVector, Score, ScoreVector, Thresholds
from shared.zk.field import average, greater_equal, product_reduce, weighted_bitmask
from shared.zk.models import VerificationCategory


ENCRYPTION_FLOOR = 800

MAX_DATA_CATEGORIES = 32


class RegulatoryEvidence(Evidence):
    paired_fields: ClassVar[tuple[tuple[str, ...], ...]] = (
        ("privacy_scores", "data_handling_scores", "encryption_scores"),
    )

    privacy_scores: ScoreVector
    data_handling_scores: ScoreVector
    encryption_scores: ScoreVector
    data_permission_flags: FlagVector = Field(default_factory=list, max_length=MAX_DATA_CATEGORIES)


class RegulatoryThresholds(Thresholds):
    min_privacy_score: Score
    min_data_handling_score: Score


class RegulatoryComplianceVerifier(DomainVerifier[RegulatoryEvidence, RegulatoryThresholds]):
    category = VerificationCategory.COMPLIANCE
    circuit_name = "regulatory_compliance"
    evidence_model = RegulatoryEvidence
    thresholds_model = RegulatoryThresholds

    def level_names(self) -> Iterable[str]:
        return ("privacy_level", "data_handling_level", "supported_data_types")

    def evaluate(
        self, evidence: RegulatoryEvidence, thresholds: RegulatoryThresholds
    ) -> tuple[int, dict[str, int], list[int]]:
        bw = self.bit_width
        privacy_ok = product_reduce(
            [greater_equal(s, thresholds.min_privacy_score, bw) for s in evidence.privacy_scores]
        )
        handling_ok = product_reduce(
            [greater_equal(s, thresholds.min_data_handling_score, bw) for s in evidence.data_handling_scores]
        )
        encryption_ok = product_reduce(
            [greater_equal(s, ENCRYPTION_FLOOR, bw) for s in evidence.encryption_scores]
        )

        levels = {
            "privacy_level": average(evidence.privacy_scores).quotient,
            "data_handling_level": average(evidence.data_handling_scores).quotient,
            "supported_data_types": weighted_bitmask(evidence.data_permission_flags),
        }
        verified = product_reduce([privacy_ok, handling_ok, encryption_ok])
        return verified, levels, list(levels.values())


def supports_data_type(bitmask: int, data_type: int) -> bool:
    """Check whether bit ``data_type`` is set in a supported-data-types level."""
    return bool((bitmask >> data_type) & 1)

"""
Verification Circuits
=====================

Domain verifiers, one per certification category, plus the
payment-legitimacy circuit used at query settlement.

Usage:
    from shared.zk.circuits import get_verifier
    from shared.zk.models import VerificationCategory

    verifier = get_verifier(VerificationCategory.QUALITY)
    result = verifier.verify(
        agent_id="agent-001",
        evidence={"quality_scores": [900, 950, 870]},
        thresholds={"min_quality_threshold": 800},
        evidence_commitment=commitment,
    )
    if not result.verified:
        ...
"""

from shared.zk.circuits.alignment import DynamicAdaptationVerifier, IncentiveAlignmentVerifier
from shared.zk.circuits.base import DomainVerifier, Evidence, Thresholds, commit_evidence
from shared.zk.circuits.capability import CapabilityVerifier
from shared.zk.circuits.ethics import EthicsComplianceVerifier
from shared.zk.circuits.payment import PaymentLegitimacyVerifier
from shared.zk.circuits.quality import TrainingQualityVerifier
from shared.zk.circuits.regulatory import RegulatoryComplianceVerifier
from shared.zk.circuits.reputation import REPUTATION_SCORE_INDEX, ReputationScoringVerifier
from shared.zk.field import DEFAULT_BIT_WIDTH
from shared.zk.models import VerificationCategory


VERIFIER_CLASSES: dict[VerificationCategory, type[DomainVerifier]] = {
    VerificationCategory.QUALITY: TrainingQualityVerifier,
    VerificationCategory.ETHICS: EthicsComplianceVerifier,
    VerificationCategory.COMPLIANCE: RegulatoryComplianceVerifier,
    VerificationCategory.CAPABILITY: CapabilityVerifier,
    VerificationCategory.REPUTATION: ReputationScoringVerifier,
    VerificationCategory.INCENTIVE: IncentiveAlignmentVerifier,
    VerificationCategory.ADAPTATION: DynamicAdaptationVerifier,
}


def get_verifier(
    category: VerificationCategory | str,
    bit_width: int = DEFAULT_BIT_WIDTH,
) -> DomainVerifier:
    """Instantiate the domain verifier for a category."""
    return VERIFIER_CLASSES[VerificationCategory(category)](bit_width=bit_width)


__all__ = [
    "DomainVerifier",
    "Evidence",
    "Thresholds",
    "commit_evidence",
    "get_verifier",
    "VERIFIER_CLASSES",
    "REPUTATION_SCORE_INDEX",
    "TrainingQualityVerifier",
    "EthicsComplianceVerifier",
    "RegulatoryComplianceVerifier",
    "CapabilityVerifier",
    "ReputationScoringVerifier",
    "IncentiveAlignmentVerifier",
    "DynamicAdaptationVerifier",
    "PaymentLegitimacyVerifier",
]

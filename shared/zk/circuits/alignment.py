"""
Incentive-Alignment and Dynamic-Adaptation Circuits
===================================================

Both are threshold-gated aggregates over behavioural score vectors.

Incentive alignment gates user benefit and societal impact per sample and
caps the misalignment incident rate (per mille of observed interactions).
Dynamic adaptation gates adaptation success, principle preservation and
learning efficiency per sample; transfer and stability are reported only.
"""

from typing import ClassVar

from shared.zk.circuits.aggregate import AggregateVerifier, IncidentRule, MetricRule
from shared.zk.circuits.base import Evidence, FlagVector, Score, ScoreVector, Thresholds
from shared.zk.models import VerificationCategory


class IncentiveAlignmentEvidence(Evidence):
    paired_fields: ClassVar[tuple[tuple[str, ...], ...]] = (
        (
            "user_benefit_scores",
            "societal_impact_scores",
            "economic_efficiency_scores",
            "sustainability_scores",
            "stakeholder_satisfaction_scores",
        ),
    )

    user_benefit_scores: ScoreVector
    societal_impact_scores: ScoreVector
    economic_efficiency_scores: ScoreVector
    sustainability_scores: ScoreVector
    stakeholder_satisfaction_scores: ScoreVector
    misalignment_flags: FlagVector


class IncentiveAlignmentThresholds(Thresholds):
    min_user_benefit: Score
    min_societal_impact: Score
    max_misalignment_rate: Score


class IncentiveAlignmentVerifier(AggregateVerifier):
    category = VerificationCategory.INCENTIVE
    circuit_name = "incentive_alignment"
    evidence_model = IncentiveAlignmentEvidence
    thresholds_model = IncentiveAlignmentThresholds

    metrics: ClassVar[tuple[MetricRule, ...]] = (
        MetricRule("user_benefit_scores", "user_benefit_level", "min_user_benefit"),
        MetricRule("societal_impact_scores", "societal_impact_level", "min_societal_impact"),
        MetricRule("economic_efficiency_scores", "economic_efficiency_level"),
        MetricRule("sustainability_scores", "sustainability_level"),
        MetricRule("stakeholder_satisfaction_scores", "stakeholder_satisfaction_level"),
    )
    incidents: ClassVar[tuple[IncidentRule, ...]] = (
        IncidentRule("misalignment_flags", "misalignment_rate", "max_misalignment_rate"),
    )
    hashed_levels = ("user_benefit_level", "societal_impact_level", "misalignment_rate")


class DynamicAdaptationEvidence(Evidence):
    paired_fields: ClassVar[tuple[tuple[str, ...], ...]] = (
        (
            "adaptation_success_scores",
            "principle_preservation_scores",
            "learning_efficiency_scores",
            "transfer_scores",
            "stability_scores",
        ),
    )

    adaptation_success_scores: ScoreVector
    principle_preservation_scores: ScoreVector
    learning_efficiency_scores: ScoreVector
    transfer_scores: ScoreVector
    stability_scores: ScoreVector


class DynamicAdaptationThresholds(Thresholds):
    min_adaptation_success: Score
    min_principle_preservation: Score
    min_learning_efficiency: Score


class DynamicAdaptationVerifier(AggregateVerifier):
    category = VerificationCategory.ADAPTATION
    circuit_name = "dynamic_adaptation"
    evidence_model = DynamicAdaptationEvidence
    thresholds_model = DynamicAdaptationThresholds

    metrics: ClassVar[tuple[MetricRule, ...]] = (
        MetricRule("adaptation_success_scores", "adaptation_level", "min_adaptation_success"),
        MetricRule(
            "principle_preservation_scores", "principle_preservation_level", "min_principle_preservation"
        ),
        MetricRule("learning_efficiency_scores", "learning_efficiency_level", "min_learning_efficiency"),
        MetricRule("transfer_scores", "transfer_level"),
        MetricRule("stability_scores", "stability_level"),
    )
    hashed_levels = ("adaptation_level", "principle_preservation_level", "learning_efficiency_level")

"""
Training-Quality Circuit
========================

Proves that every training sample meets a minimum quality score and that
the mean does too. The mean alone is not enough: a high average can hide a
tail of failing samples.
"""

from typing import ClassVar

from shared.zk.circuits.aggregate import AggregateVerifier, MetricRule
from shared.zk.circuits.base import Evidence, Score, ScoreVector, Thresholds
from shared.zk.models import VerificationCategory


class TrainingQualityEvidence(Evidence):
    quality_scores: ScoreVector


class TrainingQualityThresholds(Thresholds):
    min_quality_threshold: Score


class TrainingQualityVerifier(AggregateVerifier):
    category = VerificationCategory.QUALITY
    circuit_name = "training_quality"
    evidence_model = TrainingQualityEvidence
    thresholds_model = TrainingQualityThresholds

    metrics: ClassVar[tuple[MetricRule, ...]] = (
        MetricRule(
            field="quality_scores",
            level="average_quality",
            threshold="min_quality_threshold",
            per_sample=True,
            average_gate=True,
        ),
    )

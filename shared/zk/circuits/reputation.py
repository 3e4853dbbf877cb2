"""
Reputation-Scoring Circuit
==========================

Blends an agent's interaction history into a single reputation score on the
0-1000 scale:

    reputation = (25 * outcomes + 20 * feedback + 25 * completion
                  + 15 * quality + 10 * bias_free + 5 * error_free) / 100

Bias-free and error-free are ``1000 - incident rate`` (per mille). A minimum
number of interactions is required before any score is trusted.
"""

from collections.abc import Iterable
from typing import ClassVar

from pydantic import Field

from shared.zk.circuits.base import (
    COUNT_BIT_WIDTH,
    SCORE_MAX,
    DomainVerifier,
    Evidence,
    FlagVector,
    Score,
    ScoreVector,
    Thresholds,
)
from shared.zk.field import average, divide, greater_equal, product_reduce, sum_count
from shared.zk.models import PRIMARY_LEVEL_INDEX, VerificationCategory


# (component, weight in percent)
REPUTATION_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("outcomes", 25),
    ("feedback", 20),
    ("completion", 25),
    ("quality", 15),
    ("bias_free", 10),
    ("error_free", 5),
)

LEVEL_NAMES = ("reliability", "satisfaction", "bias_free", "reputation_score", "sufficient_data")

# Fixed offset of the reputation score in this circuit's public signals
REPUTATION_SCORE_INDEX = PRIMARY_LEVEL_INDEX + LEVEL_NAMES.index("reputation_score")


class ReputationEvidence(Evidence):
    paired_fields: ClassVar[tuple[tuple[str, ...], ...]] = (
        (
            "interaction_outcomes",
            "feedback_scores",
            "completion_rates",
            "quality_scores",
            "bias_incidents",
            "error_flags",
        ),
    )

    interaction_outcomes: ScoreVector
    feedback_scores: ScoreVector
    completion_rates: ScoreVector
    quality_scores: ScoreVector
    bias_incidents: FlagVector
    error_flags: FlagVector


class ReputationThresholds(Thresholds):
    min_interactions: int = Field(..., ge=0, lt=1 << COUNT_BIT_WIDTH)
    min_reputation_score: Score


class ReputationScoringVerifier(DomainVerifier[ReputationEvidence, ReputationThresholds]):
    category = VerificationCategory.REPUTATION
    circuit_name = "reputation_scoring"
    evidence_model = ReputationEvidence
    thresholds_model = ReputationThresholds

    def level_names(self) -> Iterable[str]:
        return LEVEL_NAMES

    def evaluate(
        self, evidence: ReputationEvidence, thresholds: ReputationThresholds
    ) -> tuple[int, dict[str, int], list[int]]:
        interactions = len(evidence.interaction_outcomes)

        components = {
            "outcomes": average(evidence.interaction_outcomes).quotient,
            "feedback": average(evidence.feedback_scores).quotient,
            "completion": average(evidence.completion_rates).quotient,
            "quality": average(evidence.quality_scores).quotient,
            "bias_free": SCORE_MAX
            - divide(sum_count(evidence.bias_incidents) * SCORE_MAX, interactions).quotient,
            "error_free": SCORE_MAX
            - divide(sum_count(evidence.error_flags) * SCORE_MAX, interactions).quotient,
        }

        weighted = sum(weight * components[name] for name, weight in REPUTATION_WEIGHTS)
        reputation = divide(weighted, 100).quotient

        sufficient = greater_equal(interactions, thresholds.min_interactions, COUNT_BIT_WIDTH)
        verified = product_reduce(
            [sufficient, greater_equal(reputation, thresholds.min_reputation_score, self.bit_width)]
        )

        levels = {
            "reliability": divide(components["completion"] + components["error_free"], 2).quotient,
            "satisfaction": components["feedback"],
            "bias_free": components["bias_free"],
            "reputation_score": reputation,
            "sufficient_data": sufficient,
        }
        return verified, levels, list(levels.values())

"""
Unit tests for the domain verification circuits.
"""

from decimal import Decimal
from typing import Any

import pytest
from pydantic import ValidationError

from shared.zk.circuits import (
    REPUTATION_SCORE_INDEX,
    CapabilityVerifier,
    DynamicAdaptationVerifier,
    EthicsComplianceVerifier,
    IncentiveAlignmentVerifier,
    RegulatoryComplianceVerifier,
    ReputationScoringVerifier,
    TrainingQualityVerifier,
    commit_evidence,
    get_verifier,
)
from shared.zk.circuits.payment import (
    AGENT_ID_INDEX,
    MULTIPLIER_INDEX,
    PAYMENT_INDEX,
    QUERY_ID_INDEX,
    PaymentLegitimacyVerifier,
    from_base_units,
    to_base_units,
)
from shared.zk.circuits.regulatory import supports_data_type
from shared.zk.field import to_field
from shared.zk.models import VerificationCategory


AGENT = "agent-001"
COMMITMENT = 12345


class TestTrainingQuality:
    """Tests for the training-quality circuit."""

    def test_passing_samples(self, quality_input: dict[str, Any]) -> None:
        result = TrainingQualityVerifier().verify(AGENT, evidence_commitment=COMMITMENT, **quality_input)

        assert result.verified is True
        assert result.levels == {"average_quality": 906}
        assert result.category == VerificationCategory.QUALITY

    def test_one_failing_sample_fails_despite_average(self) -> None:
        result = TrainingQualityVerifier().verify(
            AGENT,
            evidence={"quality_scores": [900, 950, 700]},
            thresholds={"min_quality_threshold": 800},
            evidence_commitment=COMMITMENT,
        )

        assert result.levels["average_quality"] == 850
        assert result.verified is False

    def test_public_signal_layout(self, quality_input: dict[str, Any]) -> None:
        verifier = TrainingQualityVerifier()
        result = verifier.verify(AGENT, evidence_commitment=COMMITMENT, **quality_input)

        assert result.public_signals == [
            1,
            result.proof_hash,
            906,
            800,
            to_field(AGENT),
            COMMITMENT,
        ]
        assert len(verifier.signal_layout()) == len(result.public_signals)
        assert result.primary_level == 906

    def test_proof_hash_binds_commitment_and_agent(self, quality_input: dict[str, Any]) -> None:
        verifier = TrainingQualityVerifier()
        base = verifier.verify(AGENT, evidence_commitment=COMMITMENT, **quality_input)
        other_commitment = verifier.verify(AGENT, evidence_commitment=COMMITMENT + 1, **quality_input)
        other_agent = verifier.verify("agent-002", evidence_commitment=COMMITMENT, **quality_input)

        assert base.proof_hash != other_commitment.proof_hash
        assert base.proof_hash != other_agent.proof_hash

    def test_score_out_of_scale_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TrainingQualityVerifier().verify(
                AGENT,
                evidence={"quality_scores": [1001]},
                thresholds={"min_quality_threshold": 800},
                evidence_commitment=COMMITMENT,
            )

    def test_empty_evidence_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TrainingQualityVerifier().verify(
                AGENT,
                evidence={"quality_scores": []},
                thresholds={"min_quality_threshold": 800},
                evidence_commitment=COMMITMENT,
            )

    def test_circuit_inputs_are_not_serialized(self, quality_input: dict[str, Any]) -> None:
        result = TrainingQualityVerifier().verify(AGENT, evidence_commitment=COMMITMENT, **quality_input)

        assert result.circuit_inputs["quality_scores"] == [900, 950, 870]
        assert "circuit_inputs" not in result.model_dump()


class TestEthicsCompliance:
    """Tests for the ethics-compliance circuit."""

    def test_all_checks_pass(self, ethics_input: dict[str, Any]) -> None:
        result = EthicsComplianceVerifier().verify(AGENT, evidence_commitment=COMMITMENT, **ethics_input)

        assert result.verified is True
        assert result.levels == {
            "bias_compliance": 1,
            "fairness_compliance": 1,
            "safety_compliance": 1,
        }

    def test_harmful_content_over_allowance(self, ethics_input: dict[str, Any]) -> None:
        evidence = {**ethics_input["evidence"], "harmful_content_flags": [1, 0, 0]}
        result = EthicsComplianceVerifier().verify(
            AGENT,
            evidence=evidence,
            thresholds=ethics_input["thresholds"],
            evidence_commitment=COMMITMENT,
        )

        assert result.verified is False
        assert result.levels["safety_compliance"] == 0
        assert result.levels["bias_compliance"] == 1

    def test_harmful_content_within_allowance(self, ethics_input: dict[str, Any]) -> None:
        evidence = {**ethics_input["evidence"], "harmful_content_flags": [1, 0, 0]}
        thresholds = {**ethics_input["thresholds"], "max_harmful_rate": 1}
        result = EthicsComplianceVerifier().verify(
            AGENT, evidence=evidence, thresholds=thresholds, evidence_commitment=COMMITMENT
        )

        assert result.verified is True

    def test_bias_above_ceiling(self, ethics_input: dict[str, Any]) -> None:
        evidence = {**ethics_input["evidence"], "bias_scores": [100, 250, 120]}
        result = EthicsComplianceVerifier().verify(
            AGENT,
            evidence=evidence,
            thresholds=ethics_input["thresholds"],
            evidence_commitment=COMMITMENT,
        )

        assert result.verified is False
        assert result.levels["bias_compliance"] == 0

    def test_unpaired_vectors_rejected(self, ethics_input: dict[str, Any]) -> None:
        evidence = {**ethics_input["evidence"], "fairness_scores": [900]}
        with pytest.raises(ValidationError, match="equal length"):
            EthicsComplianceVerifier().verify(
                AGENT,
                evidence=evidence,
                thresholds=ethics_input["thresholds"],
                evidence_commitment=COMMITMENT,
            )


class TestRegulatoryCompliance:
    """Tests for the regulatory-compliance circuit."""

    def test_levels_and_bitmask(self, compliance_input: dict[str, Any]) -> None:
        result = RegulatoryComplianceVerifier().verify(
            AGENT, evidence_commitment=COMMITMENT, **compliance_input
        )

        assert result.verified is True
        assert result.levels == {
            "privacy_level": 875,
            "data_handling_level": 870,
            "supported_data_types": 5,
        }
        assert supports_data_type(5, 0)
        assert not supports_data_type(5, 1)
        assert supports_data_type(5, 2)

    def test_encryption_floor_is_fixed(self, compliance_input: dict[str, Any]) -> None:
        evidence = {**compliance_input["evidence"], "encryption_scores": [900, 799]}
        result = RegulatoryComplianceVerifier().verify(
            AGENT,
            evidence=evidence,
            thresholds=compliance_input["thresholds"],
            evidence_commitment=COMMITMENT,
        )

        assert result.verified is False


class TestCapability:
    """Tests for the capability circuit."""

    def test_requested_type_selected(self, capability_input: dict[str, Any]) -> None:
        result = CapabilityVerifier().verify(AGENT, evidence_commitment=COMMITMENT, **capability_input)

        assert result.verified is True
        assert result.levels == {"capability_score": 900, "training_coverage": 850}

    def test_requested_type_below_threshold(self, capability_input: dict[str, Any]) -> None:
        thresholds = {**capability_input["thresholds"], "requested_query_type": 0}
        result = CapabilityVerifier().verify(
            AGENT,
            evidence=capability_input["evidence"],
            thresholds=thresholds,
            evidence_commitment=COMMITMENT,
        )

        # Type 0 is flagged supported but scores 700 < 800
        assert result.verified is False

    def test_out_of_range_type_selects_zero(self, capability_input: dict[str, Any]) -> None:
        thresholds = {**capability_input["thresholds"], "requested_query_type": 7}
        result = CapabilityVerifier().verify(
            AGENT,
            evidence=capability_input["evidence"],
            thresholds=thresholds,
            evidence_commitment=COMMITMENT,
        )

        assert result.verified is False
        assert result.levels == {"capability_score": 0, "training_coverage": 0}


class TestReputationScoring:
    """Tests for the reputation-scoring circuit."""

    def test_weighted_score(self, reputation_input: dict[str, Any]) -> None:
        result = ReputationScoringVerifier().verify(
            AGENT, evidence_commitment=COMMITMENT, **reputation_input
        )

        assert result.verified is True
        assert result.levels == {
            "reliability": 725,
            "satisfaction": 800,
            "bias_free": 1000,
            "reputation_score": 855,
            "sufficient_data": 1,
        }
        assert result.public_signals[REPUTATION_SCORE_INDEX] == 855

    def test_insufficient_interactions(self, reputation_input: dict[str, Any]) -> None:
        thresholds = {**reputation_input["thresholds"], "min_interactions": 3}
        result = ReputationScoringVerifier().verify(
            AGENT,
            evidence=reputation_input["evidence"],
            thresholds=thresholds,
            evidence_commitment=COMMITMENT,
        )

        assert result.verified is False
        assert result.levels["sufficient_data"] == 0


class TestAggregateVerifiers:
    """Tests for incentive alignment and dynamic adaptation."""

    def test_incentive_alignment_rate_cap(self) -> None:
        evidence = {
            "user_benefit_scores": [800, 900],
            "societal_impact_scores": [700, 750],
            "economic_efficiency_scores": [600, 650],
            "sustainability_scores": [500, 500],
            "stakeholder_satisfaction_scores": [900, 900],
            "misalignment_flags": [0, 1],
        }
        thresholds = {
            "min_user_benefit": 700,
            "min_societal_impact": 700,
            "max_misalignment_rate": 500,
        }
        verifier = IncentiveAlignmentVerifier()

        passing = verifier.verify(AGENT, evidence, thresholds, evidence_commitment=COMMITMENT)
        assert passing.verified is True
        assert passing.levels["misalignment_rate"] == 500
        assert passing.levels["user_benefit_level"] == 850

        strict = verifier.verify(
            AGENT,
            evidence,
            {**thresholds, "max_misalignment_rate": 499},
            evidence_commitment=COMMITMENT,
        )
        assert strict.verified is False

    def test_dynamic_adaptation_reports_ungated_levels(self) -> None:
        evidence = {
            "adaptation_success_scores": [800, 820],
            "principle_preservation_scores": [900, 950],
            "learning_efficiency_scores": [700, 760],
            "transfer_scores": [100, 200],
            "stability_scores": [50, 50],
        }
        thresholds = {
            "min_adaptation_success": 750,
            "min_principle_preservation": 900,
            "min_learning_efficiency": 700,
        }
        result = DynamicAdaptationVerifier().verify(
            AGENT, evidence, thresholds, evidence_commitment=COMMITMENT
        )

        assert result.verified is True
        assert result.levels["transfer_level"] == 150
        assert result.levels["stability_level"] == 50

    def test_registry_lookup(self) -> None:
        verifier = get_verifier("ethics")

        assert isinstance(verifier, EthicsComplianceVerifier)

    def test_commit_evidence_depends_on_salt(self, quality_input: dict[str, Any]) -> None:
        evidence = TrainingQualityVerifier.evidence_model(**quality_input["evidence"])

        assert commit_evidence(evidence, "1") != commit_evidence(evidence, "2")
        assert commit_evidence(evidence, "1") == commit_evidence(evidence, "1")


class TestPaymentLegitimacy:
    """Tests for the payment tolerance band."""

    @pytest.mark.parametrize(
        ("payment", "verified"),
        [(899, False), (900, True), (1000, True), (1100, True), (1101, False)],
    )
    def test_tolerance_band_edges(self, payment: int, verified: bool) -> None:
        verifier = PaymentLegitimacyVerifier(tolerance_bps=1000)
        result = verifier.verify(
            query_id=1,
            agent_id=AGENT,
            payment=payment,
            base_price=1000,
            complexity=0,
            response_hash="0xresponse",
        )

        assert result.expected_payment == 1000
        assert result.verified is verified

    def test_complexity_raises_expected_payment(self) -> None:
        verifier = PaymentLegitimacyVerifier()

        assert verifier.expected_payment(1000, 500) == 2000
        assert verifier.expected_payment(1000, 0) == 1000

    def test_declared_multiplier_centres_band_on_quote(self) -> None:
        # base 100, multiplier 10, complexity 500: quoted at 105
        verifier = PaymentLegitimacyVerifier()
        result = verifier.verify(
            query_id=1,
            agent_id=AGENT,
            payment=105_000_000,
            base_price=100_000_000,
            complexity=500,
            response_hash="0xresponse",
            complexity_multiplier=10_000_000,
        )

        assert result.expected_payment == 105_000_000
        assert result.verified is True
        assert result.public_signals[MULTIPLIER_INDEX] == 10_000_000

        # The reference curve would have expected 200 and rejected the quote
        assert verifier.expected_payment(100_000_000, 500) == 200_000_000

    def test_public_signals_bind_query(self) -> None:
        result = PaymentLegitimacyVerifier().verify(
            query_id=7,
            agent_id=AGENT,
            payment=1000,
            base_price=1000,
            complexity=0,
            response_hash="0xresponse",
        )

        assert result.public_signals[QUERY_ID_INDEX] == 7
        assert result.public_signals[AGENT_ID_INDEX] == to_field(AGENT)
        assert result.public_signals[PAYMENT_INDEX] == 1000

    def test_invalid_tolerance(self) -> None:
        with pytest.raises(ValueError):
            PaymentLegitimacyVerifier(tolerance_bps=10001)

    def test_base_units(self) -> None:
        assert to_base_units(Decimal("1.5")) == 1_500_000
        assert to_base_units("100") == 100_000_000
        assert from_base_units(2_500_000) == Decimal("2.5")

"""
Agent Proof Generation
======================

Runs a domain circuit over private evidence and hands the witness to the
configured proving backend.

Each proof is a pure function of its evidence and thresholds, so proofs for
different categories (or different agents) are generated concurrently.

Version: 0.1.0
"""

import asyncio
import secrets
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from shared.config import settings
from shared.logging import get_logger
from shared.zk.backends import ProofBackend, get_proof_backend
from shared.zk.circuits import get_verifier
from shared.zk.circuits.payment import (
    PaymentLegitimacyVerifier,
    PaymentVerification,
    to_base_units,
)
from shared.zk.field import to_field
from shared.zk.models import (
    DomainVerificationResult,
    ProofMetadata,
    ProofWithMetadata,
    VerificationCategory,
)


logger = get_logger(__name__)


def generate_salt() -> str:
    """Generate a random salt as a field element."""
    # 31 bytes stays under the field order
    salt_bytes = secrets.token_bytes(31)
    return str(int.from_bytes(salt_bytes, "big"))


@dataclass
class ProofRequest:
    """One category's inputs for batch proving."""

    category: VerificationCategory
    agent_id: str
    evidence: dict[str, Any] = field(repr=False)
    thresholds: dict[str, Any]
    evidence_commitment: int | str


class AgentProver:
    """
    ZK proof generator for agent verification.

    Usage:
        prover = AgentProver()

        result, proof = await prover.prove_category(
            VerificationCategory.QUALITY,
            agent_id="agent-001",
            evidence={"quality_scores": [900, 950, 870]},
            thresholds={"min_quality_threshold": 800},
            evidence_commitment=commitment,
        )
    """

    def __init__(
        self,
        backend: ProofBackend | None = None,
        bit_width: int | None = None,
    ):
        self.backend = backend or get_proof_backend()
        self.bit_width = bit_width or settings.zk.bit_width

    def evaluate(
        self,
        category: VerificationCategory | str,
        agent_id: str,
        evidence: dict[str, Any],
        thresholds: dict[str, Any],
        evidence_commitment: int | str,
    ) -> DomainVerificationResult:
        """Run the domain circuit without proving."""
        return get_verifier(category, self.bit_width).verify(
            agent_id=agent_id,
            evidence=evidence,
            thresholds=thresholds,
            evidence_commitment=evidence_commitment,
        )

    async def prove(self, result: DomainVerificationResult) -> ProofWithMetadata:
        """Prove an already evaluated domain result."""
        start_time = time.time()
        proof, signals = await self.backend.prove(
            result.circuit_name,
            result.circuit_inputs,
            result.public_signals,
        )
        proving_time_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "agent_proof_generated",
            category=result.category.value,
            agent_id=result.agent_id,
            verified=result.verified,
            backend=self.backend.name,
            proving_time_ms=proving_time_ms,
        )

        return ProofWithMetadata(
            proof=proof,
            public_signals=signals,
            metadata=ProofMetadata(
                category=result.category,
                circuit_name=result.circuit_name,
                proving_time_ms=proving_time_ms,
                agent_hash=str(to_field(result.agent_id)),
                backend=self.backend.name,
            ),
        )

    async def prove_category(
        self,
        category: VerificationCategory | str,
        agent_id: str,
        evidence: dict[str, Any],
        thresholds: dict[str, Any],
        evidence_commitment: int | str,
    ) -> tuple[DomainVerificationResult, ProofWithMetadata]:
        """Evaluate off the event loop, then prove."""
        result = await asyncio.to_thread(
            self.evaluate,
            category,
            agent_id,
            evidence,
            thresholds,
            evidence_commitment,
        )
        return result, await self.prove(result)

    async def prove_many(
        self,
        requests: Sequence[ProofRequest],
    ) -> list[tuple[DomainVerificationResult, ProofWithMetadata]]:
        """Prove independent requests concurrently, preserving order."""
        return list(
            await asyncio.gather(
                *(
                    self.prove_category(
                        r.category,
                        r.agent_id,
                        r.evidence,
                        r.thresholds,
                        r.evidence_commitment,
                    )
                    for r in requests
                )
            )
        )

    async def prove_payment(
        self,
        query_id: int,
        agent_id: str,
        payment: Decimal,
        base_price: Decimal,
        complexity: int,
        response_hash: int | str,
        complexity_multiplier: Decimal | None = None,
    ) -> tuple[PaymentVerification, ProofWithMetadata]:
        """
        Prove that a query's payment is legitimate for its complexity.

        Pass the agent's declared ``complexity_multiplier`` so the band is
        centred on the same curve the escrow minimum uses. The returned
        public signals are what the query processor expects at settlement.
        """
        verifier = PaymentLegitimacyVerifier(
            tolerance_bps=settings.query.payment_tolerance_bps,
            complexity_scale=settings.query.complexity_scale,
        )
        verification = verifier.verify(
            query_id=query_id,
            agent_id=agent_id,
            payment=to_base_units(payment),
            base_price=to_base_units(base_price),
            complexity=complexity,
            response_hash=response_hash,
            complexity_multiplier=(
                to_base_units(complexity_multiplier) if complexity_multiplier is not None else None
            ),
        )

        start_time = time.time()
        proof, signals = await self.backend.prove(
            verifier.circuit_name,
            verification.circuit_inputs,
            verification.public_signals,
        )
        proving_time_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "payment_proof_generated",
            query_id=query_id,
            agent_id=agent_id,
            verified=verification.verified,
            proving_time_ms=proving_time_ms,
        )

        return verification, ProofWithMetadata(
            proof=proof,
            public_signals=signals,
            metadata=ProofMetadata(
                circuit_name=verifier.circuit_name,
                proving_time_ms=proving_time_ms,
                agent_hash=str(to_field(agent_id)),
                backend=self.backend.name,
            ),
        )

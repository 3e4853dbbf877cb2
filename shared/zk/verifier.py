"""
ZK Proof Verification
=====================

Off-chain verification of agent proofs through the configured backend, and
Solidity calldata rendering for on-chain verifiers.

Version: 0.1.0
"""

import time
from typing import Any

from shared.logging import get_logger
from shared.zk.backends import ProofBackend, get_proof_backend
from shared.zk.models import (
    ProofWithMetadata,
    PublicSignals,
    VerificationResult,
    ZKProof,
)


logger = get_logger(__name__)


class ProofVerifier:
    """
    Proof verifier.

    Usage:
        verifier = ProofVerifier()
        result = await verifier.verify(proof_with_metadata)
        if not result.valid:
            ...
    """

    def __init__(self, backend: ProofBackend | None = None):
        self.backend = backend or get_proof_backend()

    async def verify_signals(
        self,
        circuit_name: str,
        proof: ZKProof,
        public_signals: PublicSignals | list[int],
    ) -> VerificationResult:
        """Verify a bare proof against its public signals."""
        start_time = time.time()
        try:
            valid = await self.backend.verify(circuit_name, proof, public_signals)
            error = None if valid else "Proof verification failed"
        except (OSError, ValueError) as e:
            valid = False
            error = str(e)

        verification_time_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "zk_proof_verified",
            circuit=circuit_name,
            valid=valid,
            backend=self.backend.name,
            verification_time_ms=verification_time_ms,
        )

        return VerificationResult(
            valid=valid,
            circuit_name=circuit_name,
            verification_time_ms=verification_time_ms,
            error=error,
        )

    async def verify(self, proof: ProofWithMetadata) -> VerificationResult:
        """Verify a proof produced by ``AgentProver``."""
        return await self.verify_signals(
            proof.metadata.circuit_name,
            proof.proof,
            proof.public_signals,
        )


def generate_solidity_calldata(proof: ProofWithMetadata) -> dict[str, Any]:
    """
    Generate calldata for on-chain verification.

    Returns:
        Dictionary with proof array and public inputs for Solidity
    """
    calldata = proof.proof.to_calldata()
    public_inputs = proof.public_signals.to_int_list()

    return {
        "proof": calldata,
        "publicInputs": public_inputs,
        "solidityCall": f"verifyProof({calldata}, {public_inputs})",
    }

"""
ZK-SNARK Verification Module
============================

Verification circuits, proving backends and the orchestrator that combines
per-category results into one attested master result.

Usage:
    from shared.zk import AgentProver, ProofVerifier, VerificationCategory

    prover = AgentProver()
    result, proof = await prover.prove_category(
        VerificationCategory.ETHICS,
        agent_id="agent-001",
        evidence=evidence,
        thresholds=thresholds,
        evidence_commitment=commitment,
    )

    verification = await ProofVerifier().verify(proof)

Version: 0.1.0
"""

from shared.zk.backends import (
    MockProofBackend,
    ProofBackend,
    ProofGenerationError,
    SnarkjsBackend,
    get_proof_backend,
    reset_proof_backend,
    set_proof_backend,
)
from shared.zk.models import (
    REQUIRED_CATEGORIES,
    DomainVerificationResult,
    MasterVerificationResult,
    OrchestrationState,
    ProofMetadata,
    ProofWithMetadata,
    PublicSignals,
    VerificationCategory,
    VerificationResult,
    ZKProof,
)
from shared.zk.orchestrator import (
    OrchestrationRequest,
    OrchestrationRun,
    VerificationOrchestrator,
    compute_master_proof_hash,
)
from shared.zk.prover import AgentProver, ProofRequest, generate_salt
from shared.zk.verifier import ProofVerifier, generate_solidity_calldata


__all__ = [
    # Prover
    "AgentProver",
    "ProofRequest",
    "generate_salt",
    # Verifier
    "ProofVerifier",
    "generate_solidity_calldata",
    # Backends
    "ProofBackend",
    "MockProofBackend",
    "SnarkjsBackend",
    "ProofGenerationError",
    "get_proof_backend",
    "set_proof_backend",
    "reset_proof_backend",
    # Orchestrator
    "VerificationOrchestrator",
    "OrchestrationRequest",
    "OrchestrationRun",
    "compute_master_proof_hash",
    # Models
    "REQUIRED_CATEGORIES",
    "VerificationCategory",
    "DomainVerificationResult",
    "MasterVerificationResult",
    "OrchestrationState",
    "ZKProof",
    "PublicSignals",
    "ProofMetadata",
    "ProofWithMetadata",
    "VerificationResult",
]

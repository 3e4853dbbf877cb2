"""
Proof Routes
============

Generate domain proofs, orchestrate full verification, submit proofs to
the registry and manage proof inheritance.

Version: 0.1.0
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from services.agent_registry.dependencies import Caller, Contracts, Orchestrator, Prover
from services.agent_registry.routes.agents import AgentResponse
from shared.blockchain import InheritanceEdge
from shared.config import settings
from shared.logging import get_logger
from shared.zk import (
    OrchestrationRequest,
    ProofGenerationError,
    ProofVerifier,
    VerificationCategory,
    VerificationResult,
    ZKProof,
    generate_salt,
)
from shared.zk.circuits import VERIFIER_CLASSES, commit_evidence
from shared.zk.field import from_hex, to_hex


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class GenerateProofRequest(BaseModel):
    """Evidence and thresholds for one domain proof."""

    agent_id: str = Field(..., min_length=1)
    evidence: dict[str, Any] = Field(..., description="Private evidence vectors (0-1000 scale)")
    thresholds: dict[str, Any] = Field(..., description="Public thresholds")
    salt: str | None = Field(default=None, description="Commitment salt; generated if omitted")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "agent_id": "agent-001",
                    "evidence": {"quality_scores": [900, 950, 870]},
                    "thresholds": {"min_quality_threshold": 800},
                }
            ]
        }
    }


class ProofResponse(BaseModel):
    """A generated domain proof."""

    success: bool = True
    category: VerificationCategory
    circuit_name: str
    agent_id: str
    verified: bool
    levels: dict[str, int]
    proof_hash: str
    proof: ZKProof
    public_signals: list[str]
    evidence_commitment: str
    salt: str
    proving_time_ms: int
    agent_hash: str


class SubmitProofRequest(BaseModel):
    """Registry submission of a generated proof."""

    agent_id: str = Field(..., min_length=1)
    category: VerificationCategory
    proof: ZKProof
    public_signals: list[str] = Field(..., min_length=1)
    fee: Decimal = Field(default_factory=lambda: settings.registry.verification_fee)


class VerifyProofRequest(BaseModel):
    """Off-chain verification request."""

    category: VerificationCategory
    proof: ZKProof
    public_signals: list[str] = Field(..., min_length=1)


class InheritProofRequest(BaseModel):
    """Compose a child agent's proof set from a parent proof."""

    parent_agent: str = Field(..., min_length=1)
    child_agent: str = Field(..., min_length=1)
    proof_hash: str = Field(..., description="0x-prefixed parent proof hash")


class EdgeResponse(BaseModel):
    """Inheritance edge with hashes rendered as hex."""

    child_agent: str
    parent_agent: str
    child_proof: str
    parent_proof: str
    timestamp: datetime
    tx_hash: str | None

    @classmethod
    def from_edge(cls, edge: InheritanceEdge) -> "EdgeResponse":
        return cls(
            child_agent=edge.child_agent,
            parent_agent=edge.parent_agent,
            child_proof=to_hex(edge.child_proof),
            parent_proof=to_hex(edge.parent_proof),
            timestamp=edge.timestamp,
            tx_hash=edge.tx_hash,
        )


class ProofChainResponse(BaseModel):
    """A proof and every proof it was derived from."""

    proof_hash: str
    depth: int
    chain: list[EdgeResponse]


class MasterResultResponse(BaseModel):
    """Orchestrated result for one agent."""

    agent_id: str
    creator_id: str
    agent_fully_verified: bool
    state: str
    category_flags: dict[str, bool]
    category_proof_hashes: dict[str, str]
    master_proof_hash: str
    timestamp: datetime


def _parse_signals(signals: list[str]) -> list[int]:
    try:
        return [int(s) for s in signals]
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Public signals must be decimal integers",
        ) from e


def _parse_hash(value: str) -> int:
    try:
        return from_hex(value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid proof hash: {value}",
        ) from e


# ============================================================================
# Registry Endpoints
# ============================================================================


@router.post("/submit", response_model=AgentResponse)
async def submit_proof(
    request: SubmitProofRequest,
    caller: Caller,
    contracts: Contracts,
) -> AgentResponse:
    """Submit a verified category proof to the registry."""
    record = await contracts.registry.submit_verification_proof(
        request.agent_id,
        request.category,
        request.proof,
        _parse_signals(request.public_signals),
        caller=caller,
        fee=request.fee,
    )
    return AgentResponse.from_record(record)


@router.post("/verify", response_model=VerificationResult)
async def verify_proof(request: VerifyProofRequest) -> VerificationResult:
    """Verify a proof off-chain without touching the ledger."""
    verifier = ProofVerifier()
    return await verifier.verify_signals(
        VERIFIER_CLASSES[request.category].circuit_name,
        request.proof,
        _parse_signals(request.public_signals),
    )


@router.post("/inherit", response_model=EdgeResponse, status_code=status.HTTP_201_CREATED)
async def inherit_proof(
    request: InheritProofRequest,
    caller: Caller,
    contracts: Contracts,
) -> EdgeResponse:
    """Record that the child agent builds on one of the parent's proofs."""
    edge = await contracts.inheritance.inherit_proof(
        request.parent_agent,
        request.child_agent,
        _parse_hash(request.proof_hash),
        caller=caller,
    )
    return EdgeResponse.from_edge(edge)


@router.get("/{proof_hash}/chain", response_model=ProofChainResponse)
async def get_proof_chain(proof_hash: str, contracts: Contracts) -> ProofChainResponse:
    """Walk the inheritance chain of a proof."""
    chain = contracts.inheritance.get_proof_chain(_parse_hash(proof_hash))
    return ProofChainResponse(
        proof_hash=proof_hash,
        depth=len(chain),
        chain=[EdgeResponse.from_edge(e) for e in chain],
    )


# ============================================================================
# Proof Generation Endpoints
# ============================================================================


@router.post("/orchestrate", response_model=MasterResultResponse)
async def orchestrate(
    request: OrchestrationRequest,
    orchestrator: Orchestrator,
) -> MasterResultResponse:
    """
    Run quality, ethics and compliance (capability optional) and combine
    them into one master result.
    """
    try:
        master = await orchestrator.run_async(request)
    except ValueError as e:
        logger.warning("orchestration_validation_error", agent_id=request.agent_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e

    return MasterResultResponse(
        agent_id=master.agent_id,
        creator_id=master.creator_id,
        agent_fully_verified=master.agent_fully_verified,
        state=master.state.value,
        category_flags={c.value: f for c, f in master.category_flags.items()},
        category_proof_hashes={c.value: to_hex(h) for c, h in master.category_results.items()},
        master_proof_hash=master.master_proof_hash_hex,
        timestamp=master.timestamp,
    )


@router.post("/{category}", response_model=ProofResponse)
async def generate_proof(
    category: VerificationCategory,
    request: GenerateProofRequest,
    prover: Prover,
) -> ProofResponse:
    """
    Evaluate a domain circuit over private evidence and prove it.

    A threshold miss is not an error: the proof attests ``verified = false``.
    """
    logger.info(
        "generating_agent_proof",
        category=category.value,
        agent_id=request.agent_id,
    )

    salt = request.salt or generate_salt()

    try:
        verifier_class = VERIFIER_CLASSES[category]
        evidence = verifier_class.evidence_model(**request.evidence)
        commitment = commit_evidence(evidence, salt)

        result, proof = await prover.prove_category(
            category,
            agent_id=request.agent_id,
            evidence=request.evidence,
            thresholds=request.thresholds,
            evidence_commitment=commitment,
        )

    except ValueError as e:
        logger.warning("agent_proof_validation_error", category=category.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except FileNotFoundError as e:
        logger.error("circuit_files_not_found", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="ZK circuit files not available. Run circuit setup first.",
        ) from e
    except ProofGenerationError as e:
        logger.error("agent_proof_generation_failed", category=category.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Proof generation failed",
        ) from e

    return ProofResponse(
        category=category,
        circuit_name=result.circuit_name,
        agent_id=result.agent_id,
        verified=result.verified,
        levels=result.levels,
        proof_hash=result.proof_hash_hex,
        proof=proof.proof,
        public_signals=proof.public_signals.signals,
        evidence_commitment=str(commitment),
        salt=salt,
        proving_time_ms=proof.metadata.proving_time_ms,
        agent_hash=proof.metadata.agent_hash,
    )

"""
Query Routes
============

Capability declaration, paid query submission and settlement.

Version: 0.1.0
"""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from services.agent_registry.dependencies import Caller, Contracts, Prover
from shared.blockchain import AgentCapabilities, QueryRequest
from shared.logging import get_logger
from shared.payments import PaymentAuthorization
from shared.zk import ProofGenerationError, ZKProof
from shared.zk.field import to_hex


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class CapabilitiesRequest(BaseModel):
    """Supported query types and price curve."""

    supported_types: list[int] = Field(..., min_length=1)
    base_price: Decimal = Field(..., ge=0)
    complexity_multiplier: Decimal = Field(default=Decimal(0), ge=0)


class PriceResponse(BaseModel):
    agent_id: str
    estimated_complexity: int
    expected_payment: Decimal


class SubmitQueryRequest(BaseModel):
    """A paid query against a verified agent."""

    agent_id: str = Field(..., min_length=1)
    query_type: int = Field(..., ge=0)
    payment: Decimal = Field(..., gt=0)
    query_hash: str = Field(..., min_length=1)
    estimated_complexity: int = Field(default=0, ge=0)
    authorization: PaymentAuthorization | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "agent_id": "agent-001",
                    "query_type": 1,
                    "payment": "100",
                    "query_hash": "0x5f2b...",
                    "estimated_complexity": 0,
                }
            ]
        }
    }


class QueryResponse(BaseModel):
    """Query request as exposed over HTTP."""

    query_id: int
    agent_id: str
    requester: str
    query_type: int
    payment: Decimal
    estimated_complexity: int
    query_hash: str
    base_price: Decimal
    complexity_multiplier: Decimal
    created_at: datetime
    processed: bool
    processed_at: datetime | None
    response_commitment: str | None
    platform_fee: Decimal | None
    creator_payout: Decimal | None
    royalties: dict[str, Decimal]
    tx_hash: str | None

    @classmethod
    def from_query(cls, query: QueryRequest) -> "QueryResponse":
        return cls(
            **query.model_dump(exclude={"response_commitment"}),
            response_commitment=(
                to_hex(query.response_commitment) if query.response_commitment is not None else None
            ),
        )


class PaymentProofRequest(BaseModel):
    """Inputs for the payment-legitimacy proof of a query."""

    response_hash: str = Field(..., min_length=1)
    observed_complexity: int | None = Field(
        default=None, ge=0, description="Complexity observed while processing; defaults to the estimate"
    )


class PaymentProofResponse(BaseModel):
    query_id: int
    payment_verified: bool
    expected_payment: int
    response_commitment: str
    proof: ZKProof
    public_signals: list[str]


class ProcessQueryRequest(BaseModel):
    """Settlement request carrying the query-processing proof."""

    proof: ZKProof
    public_signals: list[str] = Field(..., min_length=1)


# ============================================================================
# Capabilities
# ============================================================================


@router.put("/capabilities/{agent_id}", response_model=AgentCapabilities)
async def set_capabilities(
    agent_id: str,
    request: CapabilitiesRequest,
    caller: Caller,
    contracts: Contracts,
) -> AgentCapabilities:
    """Replace a fully verified agent's capability list. Creator only."""
    return await contracts.queries.set_agent_capabilities(
        agent_id,
        supported_types=request.supported_types,
        base_price=request.base_price,
        complexity_multiplier=request.complexity_multiplier,
        caller=caller,
    )


@router.get("/capabilities/{agent_id}", response_model=AgentCapabilities)
async def get_capabilities(agent_id: str, contracts: Contracts) -> AgentCapabilities:
    capabilities = contracts.queries.get_agent_capabilities(agent_id)
    if capabilities is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Agent {agent_id} has no declared capabilities",
        )
    return capabilities


@router.get("/capabilities/{agent_id}/price", response_model=PriceResponse)
async def get_price(
    agent_id: str,
    contracts: Contracts,
    estimated_complexity: int = Query(default=0, ge=0),
) -> PriceResponse:
    """Minimum payment for a query of the given estimated complexity."""
    return PriceResponse(
        agent_id=agent_id,
        estimated_complexity=estimated_complexity,
        expected_payment=contracts.queries.expected_payment(agent_id, estimated_complexity),
    )


# ============================================================================
# Queries
# ============================================================================


@router.post("", response_model=QueryResponse, status_code=status.HTTP_201_CREATED)
async def submit_query(
    request: SubmitQueryRequest,
    caller: Caller,
    contracts: Contracts,
) -> QueryResponse:
    """Pay for a query; the payment is held in escrow until settlement."""
    query_id = await contracts.queries.submit_query(
        request.agent_id,
        query_type=request.query_type,
        payment=request.payment,
        query_hash=request.query_hash,
        caller=caller,
        estimated_complexity=request.estimated_complexity,
        authorization=request.authorization,
    )
    return QueryResponse.from_query(contracts.queries.get_query_details(query_id))


@router.get("/{query_id}", response_model=QueryResponse)
async def get_query(query_id: int, contracts: Contracts) -> QueryResponse:
    return QueryResponse.from_query(contracts.queries.get_query_details(query_id))


@router.post("/{query_id}/payment-proof", response_model=PaymentProofResponse)
async def generate_payment_proof(
    query_id: int,
    request: PaymentProofRequest,
    contracts: Contracts,
    prover: Prover,
) -> PaymentProofResponse:
    """Prove that the escrowed payment fits the price curve pinned on the query."""
    query = contracts.queries.get_query_details(query_id)

    complexity = (
        request.observed_complexity
        if request.observed_complexity is not None
        else query.estimated_complexity
    )

    try:
        verification, proof = await prover.prove_payment(
            query_id=query_id,
            agent_id=query.agent_id,
            payment=query.payment,
            base_price=query.base_price,
            complexity=complexity,
            response_hash=request.response_hash,
            complexity_multiplier=query.complexity_multiplier,
        )
    except ProofGenerationError as e:
        logger.error("payment_proof_generation_failed", query_id=query_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Proof generation failed",
        ) from e

    return PaymentProofResponse(
        query_id=query_id,
        payment_verified=verification.verified,
        expected_payment=verification.expected_payment,
        response_commitment=to_hex(verification.response_commitment),
        proof=proof.proof,
        public_signals=proof.public_signals.signals,
    )


@router.post("/{query_id}/process", response_model=QueryResponse)
async def process_query(
    query_id: int,
    request: ProcessQueryRequest,
    caller: Caller,
    contracts: Contracts,
) -> QueryResponse:
    """Settle an escrowed query with its processing proof."""
    try:
        public_inputs = [int(s) for s in request.public_signals]
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Public signals must be decimal integers",
        ) from e

    settled = await contracts.queries.submit_query_processing_proof(
        query_id,
        request.proof,
        public_inputs,
        caller=caller,
    )
    return QueryResponse.from_query(settled)

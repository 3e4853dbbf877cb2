"""
Agent Routes
============

Registration, status and discovery endpoints.

Version: 0.1.0
"""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from services.agent_registry.dependencies import Caller, Contracts, Store
from shared.blockchain import AgentRecord, AgentVerificationStatus
from shared.config import settings
from shared.logging import get_logger
from shared.models.common import PaginatedResponse
from shared.storage import AgentMetadata, AgentSearchQuery, AgentSummary
from shared.zk.field import to_hex


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class RegisterAgentRequest(BaseModel):
    """Request to register an agent."""

    agent_id: str = Field(..., min_length=1, max_length=128)
    metadata: AgentMetadata
    fee: Decimal = Field(default_factory=lambda: settings.registry.registration_fee)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "agent_id": "agent-001",
                    "metadata": {
                        "name": "Contract Reviewer",
                        "developer": "Acme Labs",
                        "training_standards": ["iso-42001"],
                    },
                    "fee": "0.01",
                }
            ]
        }
    }


class AgentResponse(BaseModel):
    """Agent record as exposed over HTTP."""

    agent_id: str
    creator: str
    metadata_ref: str
    registered_at: datetime
    active: bool
    verified: dict[str, bool]
    proof_hashes: dict[str, str]
    inherited_proofs: list[str]
    submission_count: int
    reputation_score: int
    fully_verified: bool
    master_proof_hash: str | None
    tx_hash: str | None
    block_number: int | None

    @classmethod
    def from_record(cls, record: AgentRecord) -> "AgentResponse":
        return cls(
            agent_id=record.agent_id,
            creator=record.creator,
            metadata_ref=record.metadata_ref,
            registered_at=record.registered_at,
            active=record.active,
            verified={c.value: v for c, v in record.verified.items()},
            proof_hashes={c.value: to_hex(h) for c, h in record.proof_hashes.items()},
            inherited_proofs=[to_hex(h) for h in record.inherited_proofs],
            submission_count=record.submission_count,
            reputation_score=record.reputation_score,
            fully_verified=record.fully_verified,
            master_proof_hash=(
                to_hex(record.master_proof_hash) if record.master_proof_hash is not None else None
            ),
            tx_hash=record.tx_hash,
            block_number=record.block_number,
        )


class AgentDetailResponse(BaseModel):
    """Agent record together with its stored metadata."""

    agent: AgentResponse
    metadata: AgentMetadata
    metadata_intact: bool


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
async def register_agent(
    request: RegisterAgentRequest,
    caller: Caller,
    contracts: Contracts,
    store: Store,
) -> AgentResponse:
    """
    Register an agent owned by the caller.

    The metadata is stored first; its content hash becomes the record's
    metadata reference. Discovery indexing happens only after the ledger
    accepts the registration.
    """
    metadata_ref = await store.put(request.metadata.model_dump(mode="json"))

    record = await contracts.registry.register_agent(
        request.agent_id,
        metadata_ref=metadata_ref,
        caller=caller,
        fee=request.fee,
    )
    await store.index_agent(request.agent_id, metadata_ref, request.metadata)

    return AgentResponse.from_record(record)


@router.get("/search", response_model=PaginatedResponse[AgentSummary])
async def search_agents(
    store: Store,
    name: str | None = Query(default=None, description="Substring of the agent name"),
    developer: str | None = Query(default=None, description="Substring of the developer"),
    tags: list[str] | None = Query(default=None, description="Any of these tags"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> PaginatedResponse[AgentSummary]:
    """Discover registered agents."""
    results = await store.search(AgentSearchQuery(name=name, developer=developer, tags=tags or []))

    logger.debug("agents_searched", total=len(results), page=page)

    return PaginatedResponse[AgentSummary].paginate(results, page, page_size)


@router.get("/{agent_id}", response_model=AgentDetailResponse)
async def get_agent(agent_id: str, contracts: Contracts, store: Store) -> AgentDetailResponse:
    """Get an agent's ledger record and metadata."""
    record = contracts.registry.get_agent(agent_id)
    metadata = await store.get(record.metadata_ref)

    return AgentDetailResponse(
        agent=AgentResponse.from_record(record),
        metadata=AgentMetadata(**metadata),
        metadata_intact=await store.verify_integrity(record.metadata_ref),
    )


@router.get("/{agent_id}/status", response_model=AgentVerificationStatus)
async def get_agent_status(agent_id: str, contracts: Contracts) -> AgentVerificationStatus:
    """Per-category verification flags, reputation and master proof hash."""
    return contracts.registry.get_agent_verification_status(agent_id)


@router.post("/{agent_id}/deactivate", response_model=AgentResponse)
async def deactivate_agent(agent_id: str, caller: Caller, contracts: Contracts) -> AgentResponse:
    """Deactivate an agent. Creator only; the record is kept."""
    record = await contracts.registry.deactivate_agent(agent_id, caller=caller)
    return AgentResponse.from_record(record)

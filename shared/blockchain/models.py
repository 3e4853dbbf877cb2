"""
Ledger Data Models
==================

Records held by the registry, query processor and inheritance ledger.

Version: 0.1.0
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.zk.field import to_hex
from shared.zk.models import REQUIRED_CATEGORIES, VerificationCategory


class LedgerEvent(BaseModel):
    """Event emitted by a committed transaction."""

    model_config = ConfigDict(frozen=True)

    name: str
    tx_hash: str
    block_number: int
    timestamp: datetime
    data: dict[str, Any] = Field(default_factory=dict)


class AgentRecord(BaseModel):
    """Registry entry for one agent. Never deleted; see ``active``."""

    agent_id: str
    creator: str
    metadata_ref: str
    registered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    active: bool = True

    # Per-category state, written only by the registry
    verified: dict[VerificationCategory, bool] = Field(default_factory=dict)
    proof_hashes: dict[VerificationCategory, int] = Field(default_factory=dict)
    category_levels: dict[VerificationCategory, int] = Field(default_factory=dict)
    submission_count: int = 0

    # Proofs derived from a parent agent's proof
    inherited_proofs: list[int] = Field(default_factory=list)

    reputation_score: int = 0
    reputation_proven: bool = False
    fully_verified: bool = False
    verified_at: datetime | None = None
    master_proof_hash: int | None = None

    tx_hash: str | None = None
    block_number: int | None = None

    def is_verified(self, category: VerificationCategory) -> bool:
        return self.verified.get(category, False)

    @property
    def all_required_verified(self) -> bool:
        return all(self.is_verified(c) for c in REQUIRED_CATEGORIES)

    def has_proof(self, proof_hash: int) -> bool:
        return proof_hash in self.proof_hashes.values() or proof_hash in self.inherited_proofs


class AgentVerificationStatus(BaseModel):
    """Registry read surface for one agent."""

    agent_id: str
    quality_verified: bool
    ethics_verified: bool
    compliance_verified: bool
    capability_verified: bool
    fully_verified: bool
    reputation_score: int
    timestamp: datetime | None
    master_proof_hash: str | None

    @classmethod
    def from_record(cls, record: AgentRecord) -> "AgentVerificationStatus":
        return cls(
            agent_id=record.agent_id,
            quality_verified=record.is_verified(VerificationCategory.QUALITY),
            ethics_verified=record.is_verified(VerificationCategory.ETHICS),
            compliance_verified=record.is_verified(VerificationCategory.COMPLIANCE),
            capability_verified=record.is_verified(VerificationCategory.CAPABILITY),
            fully_verified=record.fully_verified,
            reputation_score=record.reputation_score,
            timestamp=record.verified_at,
            master_proof_hash=(
                to_hex(record.master_proof_hash) if record.master_proof_hash is not None else None
            ),
        )


class AgentCapabilities(BaseModel):
    """Declared query types and price curve for a verified agent."""

    agent_id: str
    supported_types: list[int]
    base_price: Decimal = Field(..., ge=0)
    complexity_multiplier: Decimal = Field(..., ge=0)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    tx_hash: str | None = None


class QueryRequest(BaseModel):
    """A paid query held in escrow until a processing proof settles it."""

    query_id: int
    agent_id: str
    requester: str
    query_type: int
    payment: Decimal
    estimated_complexity: int = 0
    query_hash: str

    # Price curve in force at submission; settlement proofs must use it
    base_price: Decimal
    complexity_multiplier: Decimal

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    processed: bool = False
    processed_at: datetime | None = None
    response_commitment: int | None = None
    platform_fee: Decimal | None = None
    creator_payout: Decimal | None = None
    royalties: dict[str, Decimal] = Field(default_factory=dict)

    tx_hash: str | None = None


class InheritanceEdge(BaseModel):
    """Child proof composed from a parent agent's proof. Append-only."""

    model_config = ConfigDict(frozen=True)

    child_agent: str
    parent_agent: str
    child_proof: int
    parent_proof: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    tx_hash: str | None = None

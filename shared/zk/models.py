"""
ZK Data Models
==============

Pydantic models for proofs, public signals and verification results.

Version: 0.1.0
"""

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.zk.field import to_hex


class VerificationCategory(str, Enum):
    """Properties an agent can be certified for."""

    QUALITY = "quality"
    ETHICS = "ethics"
    COMPLIANCE = "compliance"
    CAPABILITY = "capability"
    REPUTATION = "reputation"
    INCENTIVE = "incentive"
    ADAPTATION = "adaptation"


# Categories the registry requires before an agent is fully verified
REQUIRED_CATEGORIES: tuple[VerificationCategory, ...] = (
    VerificationCategory.QUALITY,
    VerificationCategory.ETHICS,
    VerificationCategory.COMPLIANCE,
    VerificationCategory.CAPABILITY,
)


# Public signal layout shared by every domain circuit
VERIFIED_INDEX = 0
PROOF_HASH_INDEX = 1
PRIMARY_LEVEL_INDEX = 2


class ZKProof(BaseModel):
    """
    A zero-knowledge proof.

    Groth16 point layout as produced by snarkjs: ``a`` and ``c`` are G1
    points, ``b`` is a G2 point. Coordinates are decimal strings.
    """

    a: list[str] = Field(..., description="Proof point A (G1)")
    b: list[list[str]] = Field(..., description="Proof point B (G2)")
    c: list[str] = Field(..., description="Proof point C (G1)")

    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")

    @classmethod
    def from_snarkjs(cls, data: dict[str, Any]) -> "ZKProof":
        """Build from a snarkjs proof.json document."""
        return cls(
            a=data["pi_a"],
            b=data["pi_b"],
            c=data["pi_c"],
            protocol=data.get("protocol", "groth16"),
            curve=data.get("curve", "bn128"),
        )

    def to_snarkjs(self) -> dict[str, Any]:
        """Render as a snarkjs proof.json document."""
        return {
            "pi_a": self.a,
            "pi_b": self.b,
            "pi_c": self.c,
            "protocol": self.protocol,
            "curve": self.curve,
        }

    def to_calldata(self) -> list[int]:
        """Convert to Solidity calldata format (8 uint256)."""
        return [
            int(self.a[0]),
            int(self.a[1]),
            int(self.b[0][0]),
            int(self.b[0][1]),
            int(self.b[1][0]),
            int(self.b[1][1]),
            int(self.c[0]),
            int(self.c[1]),
        ]

    def to_hex(self) -> str:
        """Convert to hex string for storage."""
        return json.dumps(self.model_dump()).encode().hex()

    @classmethod
    def from_hex(cls, hex_str: str) -> "ZKProof":
        """Create from hex string."""
        data = json.loads(bytes.fromhex(hex_str).decode())
        return cls(**data)


class PublicSignals(BaseModel):
    """Public inputs and outputs of a proof, in circuit order."""

    signals: list[str] = Field(..., description="Public signals as decimal strings")

    @classmethod
    def from_ints(cls, values: list[int]) -> "PublicSignals":
        return cls(signals=[str(v) for v in values])

    @property
    def verified(self) -> bool:
        return bool(self.signals) and int(self.signals[VERIFIED_INDEX]) == 1

    @property
    def proof_hash(self) -> int | None:
        if len(self.signals) <= PROOF_HASH_INDEX:
            return None
        return int(self.signals[PROOF_HASH_INDEX])

    def to_int_list(self) -> list[int]:
        """Convert to list of integers."""
        return [int(s) for s in self.signals]


class DomainVerificationResult(BaseModel):
    """
    Outcome of one domain verifier over one evidence snapshot.

    Immutable: a new evidence snapshot yields a new result. The circuit
    inputs hold the private witness and are never serialized.
    """

    model_config = ConfigDict(frozen=True)

    category: VerificationCategory
    circuit_name: str
    agent_id: str
    verified: bool
    levels: dict[str, int]
    proof_hash: int
    public_signals: list[int]
    computed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    circuit_inputs: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)

    @property
    def proof_hash_hex(self) -> str:
        return to_hex(self.proof_hash)

    @property
    def primary_level(self) -> int:
        return self.public_signals[PRIMARY_LEVEL_INDEX]


class OrchestrationState(str, Enum):
    """Lifecycle of one orchestration run."""

    UNSTARTED = "unstarted"
    ALL_COMPUTED = "all_computed"
    FULLY_VERIFIED = "fully_verified"
    PARTIALLY_VERIFIED = "partially_verified"


class MasterVerificationResult(BaseModel):
    """AND-combination of the per-category results for one agent."""

    model_config = ConfigDict(frozen=True)

    agent_id: str
    creator_id: str
    agent_fully_verified: bool
    state: OrchestrationState
    category_results: dict[VerificationCategory, int]
    category_flags: dict[VerificationCategory, bool]
    master_proof_hash: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def master_proof_hash_hex(self) -> str:
        return to_hex(self.master_proof_hash)


class ProofMetadata(BaseModel):
    """Metadata about a generated proof."""

    category: VerificationCategory | None = None
    circuit_name: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    proving_time_ms: int = Field(..., ge=0)

    agent_hash: str
    backend: str


class ProofWithMetadata(BaseModel):
    """Complete proof with metadata."""

    proof: ZKProof
    public_signals: PublicSignals
    metadata: ProofMetadata

    @property
    def proof_hash(self) -> int | None:
        return self.public_signals.proof_hash


class VerificationResult(BaseModel):
    """Result of proof verification."""

    valid: bool
    circuit_name: str
    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)

    error: str | None = None

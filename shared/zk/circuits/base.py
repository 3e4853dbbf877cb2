"""
Domain Verifier Base
====================

Common shape of every domain circuit: private evidence plus public
thresholds in, ``{verified, levels, proof_hash}`` out, with public signals
laid out positionally so that ledger contracts can read them by index.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Annotated, Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared.logging import get_logger
from shared.zk.field import DEFAULT_BIT_WIDTH, commit_hash, to_field
from shared.zk.models import DomainVerificationResult, VerificationCategory


logger = get_logger(__name__)

SCORE_MAX = 1000

# Counts (interactions, incidents) get more headroom than scores
COUNT_BIT_WIDTH = 20

Score = Annotated[int, Field(ge=0, le=SCORE_MAX)]
Flag = Annotated[int, Field(ge=0, le=1)]
ScoreVector = Annotated[list[Score], Field(min_length=1)]
FlagVector = list[Flag]


class Evidence(BaseModel):
    """Private evidence vectors. Never logged, never persisted in clear."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Groups of fields that must have the same length
    paired_fields: ClassVar[tuple[tuple[str, ...], ...]] = ()

    @model_validator(mode="after")
    def vectors_must_pair(self) -> "Evidence":
        for group in self.paired_fields:
            lengths = {name: len(getattr(self, name)) for name in group}
            if len(set(lengths.values())) > 1:
                raise ValueError(f"Evidence vectors must have equal length: {lengths}")
        return self

    def flatten(self) -> list[int]:
        """All evidence values in field declaration order."""
        values: list[int] = []
        for name in type(self).model_fields:
            values.extend(getattr(self, name))
        return values


class Thresholds(BaseModel):
    """Public thresholds. Immutable per verification request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def ordered(self) -> list[int]:
        return [int(getattr(self, name)) for name in type(self).model_fields]


def commit_evidence(evidence: Evidence, salt: int | str) -> int:
    """
    Commit to an evidence snapshot without disclosing it.

    The result is what callers pass as ``evidence_commitment``; an auditor
    holding the evidence and salt can recompute it.
    """
    return commit_hash(*evidence.flatten(), salt)


E = TypeVar("E", bound=Evidence)
T = TypeVar("T", bound=Thresholds)


class DomainVerifier(ABC, Generic[E, T]):
    """
    Base class for domain verification circuits.

    Subclasses implement ``evaluate`` and return the verified flag, the
    ordered levels and which of those levels feed the proof hash.
    """

    category: ClassVar[VerificationCategory]
    circuit_name: ClassVar[str]
    evidence_model: ClassVar[type[Evidence]]
    thresholds_model: ClassVar[type[Thresholds]]

    def __init__(self, bit_width: int = DEFAULT_BIT_WIDTH) -> None:
        self.bit_width = bit_width

    @abstractmethod
    def evaluate(self, evidence: E, thresholds: T) -> tuple[int, dict[str, int], list[int]]:
        """
        Compute the circuit outputs.

        Returns:
            Tuple of (verified flag, ordered levels, key values bound into the proof hash)
        """
        ...

    def verify(
        self,
        agent_id: str,
        evidence: E | dict[str, Any],
        thresholds: T | dict[str, Any],
        evidence_commitment: int | str,
    ) -> DomainVerificationResult:
        """
        Run the circuit for one agent and one evidence snapshot.

        Threshold violations come back as ``verified=False``; only malformed
        evidence raises.
        """
        if isinstance(evidence, dict):
            evidence = self.evidence_model(**evidence)
        if isinstance(thresholds, dict):
            thresholds = self.thresholds_model(**thresholds)

        verified, levels, hash_inputs = self.evaluate(evidence, thresholds)

        agent_field = to_field(agent_id)
        commitment = to_field(evidence_commitment)
        proof_hash = commit_hash(
            agent_field,
            verified,
            *hash_inputs,
            commitment,
        )

        public_signals = [
            verified,
            proof_hash,
            *levels.values(),
            *thresholds.ordered(),
            agent_field,
            commitment,
        ]

        logger.debug(
            "domain_verifier_evaluated",
            circuit=self.circuit_name,
            agent_id=agent_id,
            verified=bool(verified),
        )

        return DomainVerificationResult(
            category=self.category,
            circuit_name=self.circuit_name,
            agent_id=agent_id,
            verified=bool(verified),
            levels=levels,
            proof_hash=proof_hash,
            public_signals=public_signals,
            circuit_inputs={
                **evidence.model_dump(),
                **thresholds.model_dump(),
                "agentId": str(agent_field),
                "evidenceCommitment": str(commitment),
            },
        )

    def signal_layout(self) -> list[str]:
        """Names of the public signals, in order."""
        return [
            "verified",
            "proof_hash",
            *self.level_names(),
            *self.thresholds_model.model_fields,
            "agent_id",
            "evidence_commitment",
        ]

    @abstractmethod
    def level_names(self) -> Iterable[str]:
        """Names of the emitted levels, in order."""
        ...

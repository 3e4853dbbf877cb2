"""
Verification Orchestrator
=========================

Composes the Training-Quality, Ethics-Compliance and Regulatory-Compliance
verifiers (Capability optionally) into one attested result per agent.

    UNSTARTED -> ALL_COMPUTED -> FULLY_VERIFIED | PARTIALLY_VERIFIED

Both end states are terminal. A failed category needs fresh evidence and a
new run; an existing run is never patched.

Version: 0.1.0
"""

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from shared.logging import get_logger
from shared.zk.circuits import get_verifier
from shared.zk.field import DEFAULT_BIT_WIDTH, commit_hash, product_reduce, to_field
from shared.zk.models import (
    DomainVerificationResult,
    MasterVerificationResult,
    OrchestrationState,
    VerificationCategory,
)


logger = get_logger(__name__)

CORE_CATEGORIES: tuple[VerificationCategory, ...] = (
    VerificationCategory.QUALITY,
    VerificationCategory.ETHICS,
    VerificationCategory.COMPLIANCE,
)


def compute_master_proof_hash(
    agent_id: str,
    creator_id: str,
    proof_hashes: Mapping[VerificationCategory, int],
    flags: Mapping[VerificationCategory, bool],
) -> int:
    """
    Bind all sub-proof hashes and flags to the agent and its creator.

    Input order: agent, quality/ethics/compliance hashes, the same three
    flags, creator. When capability took part its hash and flag follow.
    """
    quality, ethics, compliance = CORE_CATEGORIES
    inputs: list[int | str] = [
        to_field(agent_id),
        proof_hashes[quality],
        proof_hashes[ethics],
        proof_hashes[compliance],
        int(flags[quality]),
        int(flags[ethics]),
        int(flags[compliance]),
        to_field(creator_id),
    ]
    capability = VerificationCategory.CAPABILITY
    if capability in proof_hashes:
        inputs.extend([proof_hashes[capability], int(flags[capability])])
    return commit_hash(*inputs)


class CategoryInput(BaseModel):
    """Evidence, thresholds and external commitment for one category."""

    evidence: dict[str, Any]
    thresholds: dict[str, Any]
    evidence_commitment: int | str


class OrchestrationRequest(BaseModel):
    """Everything needed for one orchestration run."""

    agent_id: str = Field(..., min_length=1)
    creator_id: str = Field(..., min_length=1)
    quality: CategoryInput
    ethics: CategoryInput
    compliance: CategoryInput
    capability: CategoryInput | None = None

    def inputs(self) -> dict[VerificationCategory, CategoryInput]:
        inputs = {
            VerificationCategory.QUALITY: self.quality,
            VerificationCategory.ETHICS: self.ethics,
            VerificationCategory.COMPLIANCE: self.compliance,
        }
        if self.capability is not None:
            inputs[VerificationCategory.CAPABILITY] = self.capability
        return inputs


class OrchestrationRun:
    """State machine for a single orchestration."""

    def __init__(
        self,
        agent_id: str,
        creator_id: str,
        categories: Sequence[VerificationCategory] = CORE_CATEGORIES,
    ) -> None:
        self.agent_id = agent_id
        self.creator_id = creator_id
        self.categories = tuple(categories)
        self.results: dict[VerificationCategory, DomainVerificationResult] = {}
        self.state = OrchestrationState.UNSTARTED
        self.master: MasterVerificationResult | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (
            OrchestrationState.FULLY_VERIFIED,
            OrchestrationState.PARTIALLY_VERIFIED,
        )

    def record(self, result: DomainVerificationResult) -> None:
        """Add one sub-verifier result."""
        if self.is_terminal:
            raise RuntimeError(f"Orchestration for {self.agent_id} is already {self.state.value}")
        if result.agent_id != self.agent_id:
            raise ValueError(
                f"Result for agent {result.agent_id} cannot join orchestration for {self.agent_id}"
            )
        if result.category not in self.categories:
            raise ValueError(f"Category {result.category.value} is not part of this orchestration")
        if result.category in self.results:
            raise ValueError(f"Category {result.category.value} already computed")

        self.results[result.category] = result
        if all(c in self.results for c in self.categories):
            self.state = OrchestrationState.ALL_COMPUTED

    def finalize(self) -> MasterVerificationResult:
        """AND-reduce the recorded flags and emit the master result."""
        if self.state is not OrchestrationState.ALL_COMPUTED:
            raise RuntimeError(
                f"Cannot finalize orchestration in state {self.state.value}; "
                f"missing {[c.value for c in self.categories if c not in self.results]}"
            )

        flags = {c: self.results[c].verified for c in self.categories}
        hashes = {c: self.results[c].proof_hash for c in self.categories}

        fully_verified = product_reduce([int(flag) for flag in flags.values()])
        self.state = (
            OrchestrationState.FULLY_VERIFIED
            if fully_verified
            else OrchestrationState.PARTIALLY_VERIFIED
        )

        self.master = MasterVerificationResult(
            agent_id=self.agent_id,
            creator_id=self.creator_id,
            agent_fully_verified=bool(fully_verified),
            state=self.state,
            category_results=hashes,
            category_flags=flags,
            master_proof_hash=compute_master_proof_hash(
                self.agent_id, self.creator_id, hashes, flags
            ),
        )

        logger.info(
            "orchestration_finalized",
            agent_id=self.agent_id,
            state=self.state.value,
            failed=[c.value for c, ok in flags.items() if not ok],
        )
        return self.master


class VerificationOrchestrator:
    """
    Runs the sub-verifiers with consistent agent parameters and combines them.

    Usage:
        orchestrator = VerificationOrchestrator()
        master = await orchestrator.run_async(request)
        if master.agent_fully_verified:
            ...
    """

    def __init__(self, bit_width: int = DEFAULT_BIT_WIDTH) -> None:
        self.bit_width = bit_width

    def _evaluate(
        self, agent_id: str, category: VerificationCategory, item: CategoryInput
    ) -> DomainVerificationResult:
        return get_verifier(category, self.bit_width).verify(
            agent_id=agent_id,
            evidence=item.evidence,
            thresholds=item.thresholds,
            evidence_commitment=item.evidence_commitment,
        )

    def combine(
        self,
        agent_id: str,
        creator_id: str,
        results: Sequence[DomainVerificationResult],
    ) -> MasterVerificationResult:
        """Combine precomputed sub-results into a master result."""
        categories = [r.category for r in results]
        missing = [c.value for c in CORE_CATEGORIES if c not in categories]
        if missing:
            raise ValueError(f"Missing required sub-verifications: {missing}")

        run = OrchestrationRun(agent_id, creator_id, categories)
        for result in results:
            run.record(result)
        return run.finalize()

    def run(self, request: OrchestrationRequest) -> MasterVerificationResult:
        """Evaluate every sub-verifier in turn, then combine."""
        results = [
            self._evaluate(request.agent_id, category, item)
            for category, item in request.inputs().items()
        ]
        return self.combine(request.agent_id, request.creator_id, results)

    async def run_async(self, request: OrchestrationRequest) -> MasterVerificationResult:
        """Evaluate the sub-verifiers concurrently off the event loop."""
        results = await asyncio.gather(
            *(
                asyncio.to_thread(self._evaluate, request.agent_id, category, item)
                for category, item in request.inputs().items()
            )
        )
        return self.combine(request.agent_id, request.creator_id, list(results))

"""
Unit tests for the proof inheritance ledger.
"""

from collections.abc import Awaitable, Callable
from decimal import Decimal

import pytest

from shared.blockchain import (
    AgentRecord,
    LedgerContracts,
    PreconditionError,
    UnauthorizedCallerError,
    derive_child_proof,
)
from shared.config import settings
from shared.zk import VerificationCategory


CREATOR = "0xcreator"

VerifyAgent = Callable[..., Awaitable[AgentRecord]]


async def _register(contracts: LedgerContracts, agent_id: str, creator: str) -> AgentRecord:
    return await contracts.registry.register_agent(
        agent_id, metadata_ref=f"ref-{agent_id}", caller=creator, fee=settings.registry.registration_fee
    )


@pytest.fixture
def quality_only() -> list[VerificationCategory]:
    return [VerificationCategory.QUALITY]


class TestInheritProof:
    """Tests for recording inheritance edges."""

    @pytest.mark.asyncio
    async def test_inherit_records_edge(
        self,
        contracts: LedgerContracts,
        verify_agent: VerifyAgent,
        quality_only: list[VerificationCategory],
    ) -> None:
        parent = await verify_agent("parent", creator="0xparent", categories=quality_only)
        await _register(contracts, "child", CREATOR)
        parent_proof = parent.proof_hashes[VerificationCategory.QUALITY]

        edge = await contracts.inheritance.inherit_proof("parent", "child", parent_proof, caller=CREATOR)

        assert edge.parent_proof == parent_proof
        assert edge.child_proof == derive_child_proof("child", parent_proof)
        assert edge.tx_hash is not None

        child = contracts.registry.get_agent("child")
        assert child.inherited_proofs == [edge.child_proof]
        assert contracts.registry.has_proof("child", edge.child_proof)
        assert contracts.registry.get_agent_proofs("child")["inherited"] == [edge.child_proof]
        assert contracts.inheritance.royalty_count("0xparent") == 1
        assert contracts.inheritance.get_edges(child_agent="child") == [edge]
        assert contracts.inheritance.get_edges(parent_agent="someone") == []
        assert len(contracts.ledger.events("ProofInherited")) == 1

    @pytest.mark.asyncio
    async def test_self_inheritance_rejected(
        self,
        contracts: LedgerContracts,
        verify_agent: VerifyAgent,
        quality_only: list[VerificationCategory],
    ) -> None:
        record = await verify_agent("agent", categories=quality_only)

        with pytest.raises(PreconditionError, match="itself"):
            await contracts.inheritance.inherit_proof(
                "agent", "agent", record.proof_hashes[VerificationCategory.QUALITY], caller=CREATOR
            )

    @pytest.mark.asyncio
    async def test_only_child_creator_may_inherit(
        self,
        contracts: LedgerContracts,
        verify_agent: VerifyAgent,
        quality_only: list[VerificationCategory],
    ) -> None:
        parent = await verify_agent("parent", creator="0xparent", categories=quality_only)
        await _register(contracts, "child", CREATOR)

        with pytest.raises(UnauthorizedCallerError):
            await contracts.inheritance.inherit_proof(
                "parent", "child", parent.proof_hashes[VerificationCategory.QUALITY], caller="0xparent"
            )

        assert contracts.inheritance.royalty_count("0xparent") == 0

    @pytest.mark.asyncio
    async def test_unknown_parent_proof_rejected(self, contracts: LedgerContracts) -> None:
        await _register(contracts, "parent", "0xparent")
        await _register(contracts, "child", CREATOR)

        with pytest.raises(PreconditionError, match="not among the recorded proofs"):
            await contracts.inheritance.inherit_proof("parent", "child", 12345, caller=CREATOR)

        assert contracts.inheritance.get_edges() == []


class TestProofChain:
    """Tests for proof chain traversal."""

    @pytest.mark.asyncio
    async def test_chain_walks_to_root(
        self,
        contracts: LedgerContracts,
        verify_agent: VerifyAgent,
        quality_only: list[VerificationCategory],
    ) -> None:
        root = await verify_agent("root", creator="0xroot", categories=quality_only)
        await _register(contracts, "middle", "0xmiddle")
        await _register(contracts, "leaf", CREATOR)
        root_proof = root.proof_hashes[VerificationCategory.QUALITY]

        first = await contracts.inheritance.inherit_proof("root", "middle", root_proof, caller="0xmiddle")
        second = await contracts.inheritance.inherit_proof(
            "middle", "leaf", first.child_proof, caller=CREATOR
        )

        chain = contracts.inheritance.get_proof_chain(second.child_proof)

        assert chain == [second, first]
        assert contracts.inheritance.get_proof_chain(root_proof) == []
        assert contracts.inheritance.royalty_count("0xroot") == 1
        assert contracts.inheritance.royalty_count("0xmiddle") == 1


class TestRoyaltySplits:
    """Tests for royalty share computation."""

    @pytest.mark.asyncio
    async def test_equal_shares_between_parent_creators(
        self,
        contracts: LedgerContracts,
        verify_agent: VerifyAgent,
        quality_only: list[VerificationCategory],
    ) -> None:
        first = await verify_agent("parent-a", creator="0xa", categories=quality_only)
        second = await verify_agent("parent-b", creator="0xb", categories=quality_only)
        await _register(contracts, "child", CREATOR)

        for parent_id, parent in (("parent-a", first), ("parent-b", second)):
            await contracts.inheritance.inherit_proof(
                parent_id, "child", parent.proof_hashes[VerificationCategory.QUALITY], caller=CREATOR
            )

        splits = contracts.inheritance.royalty_splits("child", Decimal("100"), royalty_bps=1000)

        assert splits == {"0xa": Decimal("5"), "0xb": Decimal("5")}

    @pytest.mark.asyncio
    async def test_shares_round_down(
        self,
        contracts: LedgerContracts,
        verify_agent: VerifyAgent,
        quality_only: list[VerificationCategory],
    ) -> None:
        await _register(contracts, "child", CREATOR)
        for creator in ("0xa", "0xb", "0xc"):
            parent = await verify_agent(f"parent-{creator}", creator=creator, categories=quality_only)
            await contracts.inheritance.inherit_proof(
                f"parent-{creator}",
                "child",
                parent.proof_hashes[VerificationCategory.QUALITY],
                caller=CREATOR,
            )

        splits = contracts.inheritance.royalty_splits("child", Decimal("1"), royalty_bps=1)

        assert set(splits.values()) == {Decimal("0.000033")}
        assert sum(splits.values()) <= Decimal("0.0001")

    def test_no_parents_no_royalties(self, contracts: LedgerContracts) -> None:
        assert contracts.inheritance.royalty_splits("orphan", Decimal("100"), royalty_bps=500) == {}

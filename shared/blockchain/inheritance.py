"""
Proof Inheritance Ledger
========================

Records which agent proofs were composed from which parent proofs. The
edges are the source of truth for royalty routing: the creator of every
parent agent a child inherits from is owed a share of the child's revenue.

Edges are append-only and never mutated.

Version: 0.1.0
"""

from decimal import ROUND_DOWN, Decimal

from shared.blockchain.errors import PreconditionError
from shared.blockchain.ledger import Ledger, Transaction
from shared.blockchain.models import InheritanceEdge
from shared.blockchain.registry import VerificationRegistry
from shared.logging import get_logger
from shared.zk.circuits.payment import AMOUNT_DECIMALS
from shared.zk.field import commit_hash, to_field


logger = get_logger(__name__)

EDGES = "inheritance_edges"
ROYALTY_COUNTS = "royalty_counts"

AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_DECIMALS)


def derive_child_proof(child_agent: str, parent_proof: int) -> int:
    """Proof hash recorded on the child for an inherited parent proof."""
    return commit_hash(to_field(child_agent), parent_proof)


class InheritanceLedger:
    """
    Inheritance and royalty contract.

    Usage:
        inheritance = InheritanceLedger(ledger, registry)
        edge = await inheritance.inherit_proof(parent_id, child_id, proof_hash, caller=creator)
    """

    def __init__(self, ledger: Ledger, registry: VerificationRegistry) -> None:
        self.ledger = ledger
        self.registry = registry

    async def inherit_proof(
        self,
        parent_agent: str,
        child_agent: str,
        proof_hash: int,
        caller: str,
    ) -> InheritanceEdge:
        """Compose the child's proof set from one of the parent's proofs."""
        if parent_agent == child_agent:
            raise PreconditionError("An agent cannot inherit from itself")

        async with self.ledger.transaction(caller=caller) as tx:
            parent = self.registry.load_agent(tx, parent_agent)
            child = self.registry.load_agent(tx, child_agent)
            self.registry.require_creator(child, caller)
            self.registry.require_active(parent)
            self.registry.require_active(child)

            if not parent.has_proof(proof_hash):
                raise PreconditionError(
                    f"Proof is not among the recorded proofs of {parent_agent}"
                )

            child_proof = derive_child_proof(child_agent, proof_hash)
            edge = InheritanceEdge(
                child_agent=child_agent,
                parent_agent=parent_agent,
                child_proof=child_proof,
                parent_proof=proof_hash,
                timestamp=tx.timestamp,
                tx_hash=tx.tx_hash,
            )

            tx.put(EDGES, tx.next_id(EDGES), edge)
            if child_proof not in child.inherited_proofs:
                child.inherited_proofs.append(child_proof)
            tx.put(ROYALTY_COUNTS, parent.creator, tx.get(ROYALTY_COUNTS, parent.creator, 0) + 1)
            tx.emit(
                "ProofInherited",
                parent_agent=parent_agent,
                child_agent=child_agent,
                parent_proof=proof_hash,
                child_proof=child_proof,
            )

        logger.info(
            "proof_inherited",
            parent_agent=parent_agent,
            child_agent=child_agent,
            tx_hash=edge.tx_hash,
        )
        return edge

    # =========================================================================
    # Reads
    # =========================================================================

    def get_edges(
        self,
        child_agent: str | None = None,
        parent_agent: str | None = None,
    ) -> list[InheritanceEdge]:
        edges = self.ledger.scan(EDGES)
        if child_agent is not None:
            edges = [e for e in edges if e.child_agent == child_agent]
        if parent_agent is not None:
            edges = [e for e in edges if e.parent_agent == parent_agent]
        return edges

    def get_proof_chain(self, proof_hash: int) -> list[InheritanceEdge]:
        """
        Walk from a proof up through every proof it was derived from.

        Returns the edges depth-first, nearest parent first. A proof that
        was never inherited has an empty chain.
        """
        by_child: dict[int, list[InheritanceEdge]] = {}
        for edge in self.ledger.scan(EDGES):
            by_child.setdefault(edge.child_proof, []).append(edge)

        chain: list[InheritanceEdge] = []
        seen: set[int] = set()

        def walk(current: int) -> None:
            for edge in by_child.get(current, []):
                if edge.parent_proof in seen:
                    continue
                seen.add(edge.parent_proof)
                chain.append(edge)
                walk(edge.parent_proof)

        walk(proof_hash)
        return chain

    def royalty_count(self, creator: str) -> int:
        return self.ledger.read(ROYALTY_COUNTS, creator, 0)

    def _parent_creators(self, edges: list[InheritanceEdge], tx: Transaction | None) -> list[str]:
        creators: list[str] = []
        for parent_agent in dict.fromkeys(e.parent_agent for e in edges):
            record = (
                self.registry.load_agent(tx, parent_agent)
                if tx is not None
                else self.registry.get_agent(parent_agent)
            )
            creators.append(record.creator)
        return creators

    def royalty_splits(
        self,
        child_agent: str,
        amount: Decimal,
        royalty_bps: int,
        tx: Transaction | None = None,
    ) -> dict[str, Decimal]:
        """
        Royalties owed on ``amount`` of the child's revenue.

        ``royalty_bps`` of the amount is shared equally between the creators
        of the distinct parent agents, rounded down to base units. Creators
        of several parents receive each share.
        """
        edges = (
            [e for e in tx.values(EDGES) if e.child_agent == child_agent]
            if tx is not None
            else self.get_edges(child_agent=child_agent)
        )
        creators = self._parent_creators(edges, tx)
        if not creators or royalty_bps == 0:
            return {}

        pool = amount * royalty_bps / 10000
        share = (pool / len(creators)).quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)

        splits: dict[str, Decimal] = {}
        for creator in creators:
            splits[creator] = splits.get(creator, Decimal(0)) + share
        return splits

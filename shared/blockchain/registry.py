"""
Verification Registry
=====================

Ledger contract tracking each agent's creator, per-category verification
flags, reputation and full-verification status.

Registration and every proof submission are fee-gated. The fee check
precedes any state change, and every operation is atomic: a rejected call
leaves the ledger exactly as it was.

Thresholds are public inputs chosen by the prover, so each one is held
against the operator policy in ``settings.registry.threshold_policy``; a
proof run against a more lenient threshold is rejected as invalid.

Version: 0.1.0
"""

from decimal import Decimal

from shared.blockchain.errors import (
    AgentNotFoundError,
    AlreadyRegisteredError,
    InsufficientPaymentError,
    InvalidProofError,
    PreconditionError,
    UnauthorizedCallerError,
)
from shared.blockchain.ledger import Ledger, Transaction
from shared.blockchain.models import AgentRecord, AgentVerificationStatus
from shared.config import settings
from shared.logging import get_logger
from shared.zk.circuits import REPUTATION_SCORE_INDEX, get_verifier
from shared.zk.field import average, to_field
from shared.zk.models import (
    PRIMARY_LEVEL_INDEX,
    PROOF_HASH_INDEX,
    REQUIRED_CATEGORIES,
    VERIFIED_INDEX,
    VerificationCategory,
    ZKProof,
)
from shared.zk.orchestrator import compute_master_proof_hash
from shared.zk.verifier import ProofVerifier


logger = get_logger(__name__)

AGENTS = "agents"
REGISTRY_ACCOUNT = "registry"

# Domain circuits end with [..., agent_field, evidence_commitment]
AGENT_FIELD_OFFSET = -2


class VerificationRegistry:
    """
    Registry contract.

    Usage:
        registry = VerificationRegistry(ledger)
        await registry.register_agent("agent-001", metadata_ref, caller=creator, fee=fee)
        await registry.submit_verification_proof(
            "agent-001", VerificationCategory.QUALITY, proof, public_inputs,
            caller=creator, fee=fee,
        )
    """

    def __init__(
        self,
        ledger: Ledger,
        verifier: ProofVerifier | None = None,
        registration_fee: Decimal | None = None,
        verification_fee: Decimal | None = None,
        threshold_policy: dict[str, dict[str, int]] | None = None,
    ) -> None:
        self.ledger = ledger
        self.verifier = verifier or ProofVerifier()
        self.registration_fee = (
            registration_fee if registration_fee is not None else settings.registry.registration_fee
        )
        self.verification_fee = (
            verification_fee if verification_fee is not None else settings.registry.verification_fee
        )
        self.threshold_policy = (
            threshold_policy if threshold_policy is not None else settings.registry.threshold_policy
        )

    # =========================================================================
    # Helpers shared with the other contracts
    # =========================================================================

    @staticmethod
    def load_agent(tx: Transaction, agent_id: str) -> AgentRecord:
        record = tx.get(AGENTS, agent_id)
        if record is None:
            raise AgentNotFoundError(f"Agent {agent_id} is not registered")
        return record

    @staticmethod
    def require_creator(record: AgentRecord, caller: str) -> None:
        if record.creator != caller:
            raise UnauthorizedCallerError(
                f"Only the creator of {record.agent_id} may perform this operation"
            )

    @staticmethod
    def require_active(record: AgentRecord) -> None:
        if not record.active:
            raise PreconditionError(f"Agent {record.agent_id} is deactivated")

    @staticmethod
    def _require_fee(paid: Decimal, required: Decimal, operation: str) -> None:
        if paid < required:
            raise InsufficientPaymentError(
                f"{operation} requires a fee of {required}, got {paid}"
            )

    # =========================================================================
    # Mutations
    # =========================================================================

    async def register_agent(
        self,
        agent_id: str,
        metadata_ref: str,
        caller: str,
        fee: Decimal,
    ) -> AgentRecord:
        """Create an Agent Record owned by the caller."""
        self._require_fee(fee, self.registration_fee, "Registration")

        async with self.ledger.transaction(caller=caller, value=fee) as tx:
            if tx.contains(AGENTS, agent_id):
                raise AlreadyRegisteredError(f"Agent {agent_id} is already registered")

            record = AgentRecord(
                agent_id=agent_id,
                creator=caller,
                metadata_ref=metadata_ref,
                registered_at=tx.timestamp,
                tx_hash=tx.tx_hash,
                block_number=tx.block_number,
            )
            tx.put(AGENTS, agent_id, record)
            tx.credit(REGISTRY_ACCOUNT, fee)
            tx.emit("AgentRegistered", agent_id=agent_id, creator=caller, metadata_ref=metadata_ref)

        logger.info(
            "agent_registered",
            agent_id=agent_id,
            creator=caller,
            tx_hash=record.tx_hash,
        )
        return record.model_copy(deep=True)

    async def submit_verification_proof(
        self,
        agent_id: str,
        category: VerificationCategory | str,
        proof: ZKProof,
        public_inputs: list[int],
        caller: str,
        fee: Decimal,
    ) -> AgentRecord:
        """
        Record a verified category for an agent.

        Once quality, ethics, compliance and capability are all set the
        master result is (re)computed and stored.

        The proof is verified before the transaction opens, so a slow
        backend does not hold up other ledger writes. Caller and agent
        state are checked against committed state first and again inside
        the transaction.
        """
        category = VerificationCategory(category)
        self._require_fee(fee, self.verification_fee, "Verification")

        record = self.get_agent(agent_id)
        self.require_creator(record, caller)
        self.require_active(record)

        await self._check_proof(category, agent_id, proof, public_inputs)

        async with self.ledger.transaction(caller=caller, value=fee) as tx:
            record = self.load_agent(tx, agent_id)
            self.require_creator(record, caller)
            self.require_active(record)

            proof_hash = public_inputs[PROOF_HASH_INDEX]
            record.verified[category] = True
            record.proof_hashes[category] = proof_hash
            record.category_levels[category] = public_inputs[PRIMARY_LEVEL_INDEX]
            record.submission_count += 1

            if category == VerificationCategory.REPUTATION:
                record.reputation_score = public_inputs[REPUTATION_SCORE_INDEX]
                record.reputation_proven = True

            record.tx_hash = tx.tx_hash
            record.block_number = tx.block_number
            tx.credit(REGISTRY_ACCOUNT, fee)
            tx.emit(
                "VerificationProofSubmitted",
                agent_id=agent_id,
                category=category.value,
                proof_hash=proof_hash,
            )

            if category in REQUIRED_CATEGORIES and record.all_required_verified:
                self._finalize(tx, record)

        logger.info(
            "verification_proof_submitted",
            agent_id=agent_id,
            category=category.value,
            fully_verified=record.fully_verified,
            tx_hash=record.tx_hash,
        )
        return record.model_copy(deep=True)

    async def _check_proof(
        self,
        category: VerificationCategory,
        agent_id: str,
        proof: ZKProof,
        public_inputs: list[int],
    ) -> None:
        """Reject a proof that is invalid, foreign, too lenient or failing."""
        verifier = get_verifier(category)
        result = await self.verifier.verify_signals(verifier.circuit_name, proof, public_inputs)
        if not result.valid:
            raise InvalidProofError(f"{category.value} proof failed verification")

        layout = verifier.signal_layout()
        if len(public_inputs) != len(layout):
            raise InvalidProofError("Public inputs do not match the circuit layout")
        if public_inputs[AGENT_FIELD_OFFSET] != to_field(agent_id):
            raise InvalidProofError(f"Proof is bound to a different agent than {agent_id}")

        signals = dict(zip(layout, public_inputs, strict=True))
        for name, bound in self.threshold_policy.get(category.value, {}).items():
            if name not in signals:
                raise InvalidProofError(f"{category.value} proof carries no {name} threshold")
            value = signals[name]
            if name.startswith("max_"):
                lenient, requirement = value > bound, f"at most {bound}"
            else:
                lenient, requirement = value < bound, f"at least {bound}"
            if lenient:
                raise InvalidProofError(
                    f"{category.value} proof uses {name}={value}; the registry requires {requirement}"
                )

        if public_inputs[VERIFIED_INDEX] != 1:
            raise PreconditionError(f"{category.value} proof attests a failed verification")

    def _finalize(self, tx: Transaction, record: AgentRecord) -> None:
        """Store the master result once every required category is set."""
        hashes = {c: record.proof_hashes[c] for c in REQUIRED_CATEGORIES}
        flags = {c: True for c in REQUIRED_CATEGORIES}

        record.master_proof_hash = compute_master_proof_hash(
            record.agent_id, record.creator, hashes, flags
        )
        record.fully_verified = True
        record.verified_at = tx.timestamp

        # Reputation proofs take precedence over the minted score
        if not record.reputation_proven:
            levels = [record.category_levels[c] for c in REQUIRED_CATEGORIES]
            record.reputation_score = average(levels).quotient

        tx.emit(
            "AgentFullyVerified",
            agent_id=record.agent_id,
            master_proof_hash=record.master_proof_hash,
            reputation_score=record.reputation_score,
        )
        logger.info(
            "agent_fully_verified",
            agent_id=record.agent_id,
            reputation_score=record.reputation_score,
        )

    async def deactivate_agent(self, agent_id: str, caller: str) -> AgentRecord:
        """Flip the agent's active flag off. Creator only."""
        async with self.ledger.transaction(caller=caller) as tx:
            record = self.load_agent(tx, agent_id)
            self.require_creator(record, caller)
            self.require_active(record)

            record.active = False
            record.tx_hash = tx.tx_hash
            record.block_number = tx.block_number
            tx.emit("AgentDeactivated", agent_id=agent_id)

        logger.info("agent_deactivated", agent_id=agent_id)
        return record.model_copy(deep=True)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_agent(self, agent_id: str) -> AgentRecord:
        record = self.ledger.read(AGENTS, agent_id)
        if record is None:
            raise AgentNotFoundError(f"Agent {agent_id} is not registered")
        return record

    def list_agents(self) -> list[AgentRecord]:
        return self.ledger.scan(AGENTS)

    def is_agent_fully_verified(self, agent_id: str) -> bool:
        record = self.ledger.read(AGENTS, agent_id)
        return record is not None and record.fully_verified

    def get_agent_verification_status(self, agent_id: str) -> AgentVerificationStatus:
        return AgentVerificationStatus.from_record(self.get_agent(agent_id))

    def get_agent_proofs(self, agent_id: str) -> dict[str, list[int]]:
        """Recorded proof hashes, own categories and inherited."""
        record = self.get_agent(agent_id)
        return {
            "categories": [record.proof_hashes[c] for c in record.proof_hashes],
            "inherited": list(record.inherited_proofs),
        }

    def has_proof(self, agent_id: str, proof_hash: int) -> bool:
        record = self.ledger.read(AGENTS, agent_id)
        return record is not None and record.has_proof(proof_hash)

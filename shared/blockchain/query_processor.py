"""
Query Processor
===============

Ledger contract gating paid queries on an agent's full-verification status
and declared capabilities, escrowing the payment, and settling it once a
query-processing proof is supplied.

Settlement order: verify the proof, then inside one transaction mark the
query processed, move balances and hand the splits to the payment rail. A
rail failure reverts the whole settlement. The settlement section is
non-reentrant.

Version: 0.1.0
"""

from decimal import Decimal

from shared.blockchain.errors import (
    InsufficientPaymentError,
    InvalidProofError,
    PreconditionError,
    QueryAlreadyProcessedError,
    QueryNotFoundError,
)
from shared.blockchain.inheritance import InheritanceLedger
from shared.blockchain.ledger import Ledger
from shared.blockchain.models import AgentCapabilities, QueryRequest
from shared.blockchain.registry import VerificationRegistry
from shared.config import settings
from shared.logging import get_logger
from shared.payments import PaymentAuthorization, PaymentRail, RevenueSplit, get_payment_rail
from shared.zk.circuits.payment import (
    AGENT_ID_INDEX,
    BASE_PRICE_INDEX,
    CIRCUIT_NAME,
    COMPLEXITY_INDEX,
    MULTIPLIER_INDEX,
    PAYMENT_INDEX,
    PAYMENT_VERIFIED_INDEX,
    QUERY_ID_INDEX,
    RESPONSE_COMMITMENT_INDEX,
    TOLERANCE_INDEX,
    to_base_units,
)
from shared.zk.field import to_field
from shared.zk.models import ZKProof
from shared.zk.verifier import ProofVerifier


logger = get_logger(__name__)

CAPABILITIES = "capabilities"
QUERIES = "queries"
ESCROW_ACCOUNT = "escrow"


class QueryProcessor:
    """
    Query processor contract.

    Usage:
        processor = QueryProcessor(ledger, registry, inheritance)
        query_id = await processor.submit_query(
            agent_id, query_type=1, payment=Decimal("100"), query_hash="0x...",
            caller=requester,
        )
        await processor.submit_query_processing_proof(query_id, proof, public_inputs, caller=creator)
    """

    def __init__(
        self,
        ledger: Ledger,
        registry: VerificationRegistry,
        inheritance: InheritanceLedger,
        payment_rail: PaymentRail | None = None,
        verifier: ProofVerifier | None = None,
        platform_fee_bps: int | None = None,
        royalty_bps: int | None = None,
        platform_address: str | None = None,
    ) -> None:
        self.ledger = ledger
        self.registry = registry
        self.inheritance = inheritance
        self.payment_rail = payment_rail or get_payment_rail()
        self.verifier = verifier or registry.verifier
        self.platform_fee_bps = (
            platform_fee_bps if platform_fee_bps is not None else settings.query.platform_fee_bps
        )
        self.royalty_bps = royalty_bps if royalty_bps is not None else settings.query.royalty_bps
        self.platform_address = platform_address or settings.payment.platform_address
        self.complexity_scale = settings.query.complexity_scale
        self.tolerance_bps = settings.query.payment_tolerance_bps
        self.max_complexity_drift = settings.query.max_complexity_drift

    # =========================================================================
    # Capabilities
    # =========================================================================

    async def set_agent_capabilities(
        self,
        agent_id: str,
        supported_types: list[int],
        base_price: Decimal,
        complexity_multiplier: Decimal,
        caller: str,
    ) -> AgentCapabilities:
        """Replace the agent's supported query types and price curve."""
        async with self.ledger.transaction(caller=caller) as tx:
            record = self.registry.load_agent(tx, agent_id)
            self.registry.require_creator(record, caller)
            self.registry.require_active(record)
            if not record.fully_verified:
                raise PreconditionError(f"Agent {agent_id} is not fully verified")

            capabilities = AgentCapabilities(
                agent_id=agent_id,
                supported_types=sorted(set(supported_types)),
                base_price=base_price,
                complexity_multiplier=complexity_multiplier,
                updated_at=tx.timestamp,
                tx_hash=tx.tx_hash,
            )
            tx.put(CAPABILITIES, agent_id, capabilities)
            tx.emit(
                "CapabilitiesUpdated",
                agent_id=agent_id,
                supported_types=capabilities.supported_types,
            )

        logger.info(
            "agent_capabilities_set",
            agent_id=agent_id,
            supported_types=capabilities.supported_types,
        )
        return capabilities

    def get_agent_capabilities(self, agent_id: str) -> AgentCapabilities | None:
        return self.ledger.read(CAPABILITIES, agent_id)

    def expected_payment(self, agent_id: str, estimated_complexity: int = 0) -> Decimal:
        """``base_price + estimated_complexity * multiplier / scale``."""
        capabilities = self.get_agent_capabilities(agent_id)
        if capabilities is None:
            raise PreconditionError(f"Agent {agent_id} has no declared capabilities")
        return self._price(capabilities, estimated_complexity)

    def _price(self, capabilities: AgentCapabilities, estimated_complexity: int) -> Decimal:
        return (
            capabilities.base_price
            + Decimal(estimated_complexity) * capabilities.complexity_multiplier / self.complexity_scale
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def submit_query(
        self,
        agent_id: str,
        query_type: int,
        payment: Decimal,
        query_hash: str,
        caller: str,
        estimated_complexity: int = 0,
        authorization: PaymentAuthorization | None = None,
    ) -> int:
        """Escrow ``payment`` for a query against a verified agent."""
        if estimated_complexity < 0:
            raise PreconditionError("Estimated complexity must be non-negative")

        if authorization is not None:
            if authorization.amount < payment:
                raise InsufficientPaymentError(
                    f"Authorization covers {authorization.amount}, query pays {payment}"
                )
            if not await self.payment_rail.verify(authorization):
                raise InsufficientPaymentError("Payment authorization was rejected by the rail")

        async with self.ledger.transaction(caller=caller, value=payment) as tx:
            record = self.registry.load_agent(tx, agent_id)
            self.registry.require_active(record)
            if not record.fully_verified:
                raise PreconditionError(f"Agent {agent_id} is not fully verified")

            capabilities = tx.get(CAPABILITIES, agent_id)
            if capabilities is None:
                raise PreconditionError(f"Agent {agent_id} has no declared capabilities")
            if query_type not in capabilities.supported_types:
                raise PreconditionError(
                    f"Agent {agent_id} does not support query type {query_type}"
                )

            expected = self._price(capabilities, estimated_complexity)
            if payment < expected:
                raise InsufficientPaymentError(
                    f"Query requires a payment of {expected}, got {payment}"
                )

            query_id = tx.next_id(QUERIES)
            query = QueryRequest(
                query_id=query_id,
                agent_id=agent_id,
                requester=caller,
                query_type=query_type,
                payment=payment,
                estimated_complexity=estimated_complexity,
                query_hash=query_hash,
                base_price=capabilities.base_price,
                complexity_multiplier=capabilities.complexity_multiplier,
                created_at=tx.timestamp,
                tx_hash=tx.tx_hash,
            )
            tx.put(QUERIES, query_id, query)
            tx.credit(ESCROW_ACCOUNT, payment)
            tx.emit(
                "QuerySubmitted",
                query_id=query_id,
                agent_id=agent_id,
                requester=caller,
                payment=str(payment),
            )

        logger.info(
            "query_submitted",
            query_id=query_id,
            agent_id=agent_id,
            query_type=query_type,
            payment=str(payment),
        )
        return query_id

    def get_query_details(self, query_id: int) -> QueryRequest:
        query = self.ledger.read(QUERIES, query_id)
        if query is None:
            raise QueryNotFoundError(f"Query {query_id} does not exist")
        return query

    def list_queries(self, agent_id: str | None = None) -> list[QueryRequest]:
        queries = self.ledger.scan(QUERIES)
        if agent_id is not None:
            queries = [q for q in queries if q.agent_id == agent_id]
        return queries

    async def submit_query_processing_proof(
        self,
        query_id: int,
        proof: ZKProof,
        public_inputs: list[int],
        caller: str,
    ) -> QueryRequest:
        """
        Settle an escrowed query.

        The proof must attest a legitimate payment for this exact query and
        agent, priced on the curve pinned at submission with the configured
        tolerance. The query transitions to processed exactly once.

        Settlement is all-or-nothing: the rail distribution runs inside the
        transaction, after the state writes, so a rail failure reverts the
        payout and leaves the query pending for a later attempt.
        """
        async with self.ledger.non_reentrant("settlement"):
            pending = self.get_query_details(query_id)
            if pending.processed:
                raise QueryAlreadyProcessedError(f"Query {query_id} is already processed")

            result = await self.verifier.verify_signals(CIRCUIT_NAME, proof, public_inputs)
            if not result.valid:
                raise InvalidProofError(f"Processing proof for query {query_id} failed verification")

            async with self.ledger.transaction(caller=caller) as tx:
                query = tx.get(QUERIES, query_id)
                if query.processed:
                    raise QueryAlreadyProcessedError(f"Query {query_id} is already processed")

                self._check_settlement_signals(query, public_inputs)

                agent = self.registry.load_agent(tx, query.agent_id)

                platform_fee = query.payment * self.platform_fee_bps / 10000
                creator_share = query.payment - platform_fee
                royalties = self.inheritance.royalty_splits(
                    query.agent_id, creator_share, self.royalty_bps, tx=tx
                )
                creator_payout = creator_share - sum(royalties.values(), Decimal(0))

                query.processed = True
                query.processed_at = tx.timestamp
                query.response_commitment = public_inputs[RESPONSE_COMMITMENT_INDEX]
                query.platform_fee = platform_fee
                query.creator_payout = creator_payout
                query.royalties = royalties
                query.tx_hash = tx.tx_hash

                tx.transfer(ESCROW_ACCOUNT, agent.creator, creator_payout)
                tx.transfer(ESCROW_ACCOUNT, self.platform_address, platform_fee)
                for recipient, amount in royalties.items():
                    tx.transfer(ESCROW_ACCOUNT, recipient, amount)

                tx.emit(
                    "QueryProcessed",
                    query_id=query_id,
                    agent_id=query.agent_id,
                    creator_payout=str(creator_payout),
                    platform_fee=str(platform_fee),
                    royalties={k: str(v) for k, v in royalties.items()},
                )

                # Last step of the transaction; raising here reverts everything above
                splits = [RevenueSplit(recipient=agent.creator, amount=creator_payout)]
                splits.extend(RevenueSplit(recipient=r, amount=a) for r, a in royalties.items())
                splits.append(RevenueSplit(recipient=self.platform_address, amount=platform_fee))
                await self.payment_rail.distribute(query.payment, splits)

                settled = query.model_copy(deep=True)

        logger.info(
            "query_settled",
            query_id=query_id,
            agent_id=settled.agent_id,
            creator_payout=str(creator_payout),
            platform_fee=str(platform_fee),
            royalties=len(royalties),
        )
        return settled

    def _check_settlement_signals(self, query: QueryRequest, public_inputs: list[int]) -> None:
        """Bind the proof's public signals to the query and its pinned price curve."""
        if len(public_inputs) != AGENT_ID_INDEX + 1:
            raise InvalidProofError("Public inputs do not match the circuit layout")
        if (
            public_inputs[QUERY_ID_INDEX] != to_field(query.query_id)
            or public_inputs[AGENT_ID_INDEX] != to_field(query.agent_id)
            or public_inputs[PAYMENT_INDEX] != to_base_units(query.payment)
        ):
            raise InvalidProofError(f"Processing proof does not match query {query.query_id}")
        if (
            public_inputs[BASE_PRICE_INDEX] != to_base_units(query.base_price)
            or public_inputs[MULTIPLIER_INDEX] != to_base_units(query.complexity_multiplier)
        ):
            raise InvalidProofError(
                f"Processing proof is not priced on the curve of query {query.query_id}"
            )
        if public_inputs[TOLERANCE_INDEX] != self.tolerance_bps:
            raise InvalidProofError(
                f"Processing proof uses a tolerance of {public_inputs[TOLERANCE_INDEX]} bps, "
                f"settlement requires {self.tolerance_bps}"
            )
        drift = abs(public_inputs[COMPLEXITY_INDEX] - query.estimated_complexity)
        if drift > self.max_complexity_drift:
            raise InvalidProofError(
                f"Proven complexity drifts {drift} from the estimate of query {query.query_id}"
            )
        if public_inputs[PAYMENT_VERIFIED_INDEX] != 1:
            raise PreconditionError(
                f"Payment for query {query.query_id} is outside the accepted band"
            )

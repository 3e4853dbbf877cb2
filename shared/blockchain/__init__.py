"""
Blockchain Module
=================

Ledger-resident contracts for agent verification and paid queries.

Features:
- Verification registry (fee-gated registration and proof submission)
- Query processor (escrow, settlement, platform fee, royalties)
- Proof inheritance / royalty ledger
- Serialized, atomic in-memory ledger

Usage:
    from shared.blockchain import get_contracts

    contracts = get_contracts()

    record = await contracts.registry.register_agent(
        "agent-001",
        metadata_ref=content_hash,
        caller="0xcreator",
        fee=settings.registry.registration_fee,
    )
"""

from shared.blockchain.contracts import (
    LedgerContracts,
    create_contracts,
    get_contracts,
    reset_contracts,
    set_contracts,
)
from shared.blockchain.errors import (
    AgentNotFoundError,
    AlreadyRegisteredError,
    InsufficientPaymentError,
    InvalidProofError,
    LedgerError,
    PreconditionError,
    QueryAlreadyProcessedError,
    QueryNotFoundError,
    ReentrancyError,
    UnauthorizedCallerError,
)
from shared.blockchain.inheritance import InheritanceLedger, derive_child_proof
from shared.blockchain.ledger import Ledger, Transaction
from shared.blockchain.models import (
    AgentCapabilities,
    AgentRecord,
    AgentVerificationStatus,
    InheritanceEdge,
    LedgerEvent,
    QueryRequest,
)
from shared.blockchain.query_processor import QueryProcessor
from shared.blockchain.registry import VerificationRegistry


__all__ = [
    # Contracts
    "LedgerContracts",
    "create_contracts",
    "get_contracts",
    "set_contracts",
    "reset_contracts",
    "Ledger",
    "Transaction",
    "VerificationRegistry",
    "QueryProcessor",
    "InheritanceLedger",
    "derive_child_proof",
    # Models
    "AgentRecord",
    "AgentVerificationStatus",
    "AgentCapabilities",
    "QueryRequest",
    "InheritanceEdge",
    "LedgerEvent",
    # Errors
    "LedgerError",
    "InvalidProofError",
    "InsufficientPaymentError",
    "UnauthorizedCallerError",
    "PreconditionError",
    "AgentNotFoundError",
    "QueryNotFoundError",
    "AlreadyRegisteredError",
    "QueryAlreadyProcessedError",
    "ReentrancyError",
]

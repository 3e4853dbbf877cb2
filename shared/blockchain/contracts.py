"""
Contract Wiring
===============

One ledger with the registry, inheritance ledger and query processor bound
to it, plus a process-wide instance for services.

Version: 0.1.0
"""

from dataclasses import dataclass

from shared.blockchain.inheritance import InheritanceLedger
from shared.blockchain.ledger import Ledger
from shared.blockchain.query_processor import QueryProcessor
from shared.blockchain.registry import VerificationRegistry
from shared.logging import get_logger
from shared.payments import PaymentRail
from shared.zk.backends import ProofBackend
from shared.zk.verifier import ProofVerifier


logger = get_logger(__name__)


@dataclass
class LedgerContracts:
    """Contracts sharing one ledger."""

    ledger: Ledger
    registry: VerificationRegistry
    inheritance: InheritanceLedger
    queries: QueryProcessor

    async def health_check(self) -> dict:
        return {
            "status": "healthy",
            **self.ledger.get_stats(),
        }


def create_contracts(
    ledger: Ledger | None = None,
    backend: ProofBackend | None = None,
    payment_rail: PaymentRail | None = None,
) -> LedgerContracts:
    """Deploy the three contracts on a (new) ledger."""
    ledger = ledger or Ledger()
    verifier = ProofVerifier(backend)
    registry = VerificationRegistry(ledger, verifier=verifier)
    inheritance = InheritanceLedger(ledger, registry)
    queries = QueryProcessor(
        ledger,
        registry,
        inheritance,
        payment_rail=payment_rail,
        verifier=verifier,
    )
    return LedgerContracts(
        ledger=ledger,
        registry=registry,
        inheritance=inheritance,
        queries=queries,
    )


# Global contracts instance
_contracts: LedgerContracts | None = None


def get_contracts() -> LedgerContracts:
    """Get the process-wide contracts."""
    global _contracts

    if _contracts is None:
        _contracts = create_contracts()
        logger.info("ledger_contracts_deployed", block_number=_contracts.ledger.block_number)

    return _contracts


def set_contracts(contracts: LedgerContracts) -> None:
    """Set custom contracts."""
    global _contracts
    _contracts = contracts


def reset_contracts() -> None:
    """Reset the contracts to be re-deployed."""
    global _contracts
    _contracts = None

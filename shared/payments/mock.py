"""
Mock Payment Rail
=================

In-memory rail for development and testing. Accepts any authorization with
a signature not explicitly rejected, and records every transfer.

Version: 0.1.0
"""

from decimal import Decimal

from shared.config import PaymentRailMode
from shared.logging import get_logger
from shared.payments.rail import (
    PaymentAuthorization,
    PaymentRail,
    RevenueSplit,
    validate_splits,
)


logger = get_logger(__name__)


class MockPaymentRail(PaymentRail):
    """In-memory payment rail."""

    def __init__(self, rejected_signatures: set[str] | None = None) -> None:
        self.rejected_signatures = set(rejected_signatures or ())
        self.verified: list[PaymentAuthorization] = []
        self.distributions: list[tuple[Decimal, list[RevenueSplit]]] = []

    @property
    def mode(self) -> PaymentRailMode:
        return PaymentRailMode.MOCK

    async def verify(self, authorization: PaymentAuthorization) -> bool:
        valid = authorization.signature not in self.rejected_signatures
        if valid:
            self.verified.append(authorization)
        logger.debug("mock_payment_verified", amount=str(authorization.amount), valid=valid)
        return valid

    async def distribute(self, amount: Decimal, splits: list[RevenueSplit]) -> None:
        validate_splits(amount, splits)
        self.distributions.append((amount, list(splits)))
        for split in splits:
            logger.debug(
                "mock_revenue_split_sent",
                recipient=split.recipient,
                amount=str(split.amount),
            )

    def transfers_to(self, recipient: str) -> Decimal:
        """Total distributed to one recipient (for testing)."""
        return sum(
            (s.amount for _, splits in self.distributions for s in splits if s.recipient == recipient),
            Decimal(0),
        )

    def clear_all(self) -> None:
        """Clear recorded payments (for testing)."""
        self.verified.clear()
        self.distributions.clear()

"""
Payment Rail Interface
======================

Abstract base class and models for the off-chain payment rail that
authorizes query payments and settles revenue splits.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.config import PaymentRailMode, settings
from shared.logging import get_logger


logger = get_logger(__name__)


class PaymentAuthorization(BaseModel):
    """Signed payment presented by a requester."""

    signature: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    token: str = "USDC"
    payer: str | None = None


class RevenueSplit(BaseModel):
    """One recipient's share of a distribution."""

    model_config = ConfigDict(frozen=True)

    recipient: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)

    def percentage_of(self, total: Decimal) -> Decimal:
        return self.amount * 100 / total if total else Decimal(0)


class SplitValidationError(ValueError):
    """Revenue splits do not account for the whole amount."""


def validate_splits(amount: Decimal, splits: list[RevenueSplit]) -> None:
    """Revenue splits must total 100% of the distributed amount."""
    if not splits:
        raise SplitValidationError("At least one revenue split is required")
    total = sum((s.amount for s in splits), Decimal(0))
    if total != amount:
        raise SplitValidationError(
            f"Revenue splits must total 100% of {amount}, got {total}"
        )


class PaymentRail(ABC):
    """Abstract payment rail."""

    @property
    @abstractmethod
    def mode(self) -> PaymentRailMode:
        """Get the rail mode."""
        ...

    @abstractmethod
    async def verify(self, authorization: PaymentAuthorization) -> bool:
        """
        Check a payment authorization.

        Args:
            authorization: Signed payment from the requester

        Returns:
            True if the rail accepts the payment
        """
        ...

    @abstractmethod
    async def distribute(self, amount: Decimal, splits: list[RevenueSplit]) -> None:
        """
        Send ``amount`` to the split recipients.

        Raises:
            SplitValidationError: If the splits do not total the amount
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "mode": self.mode.value}


# Global rail instance
_rail: PaymentRail | None = None


def get_payment_rail() -> PaymentRail:
    """Get the configured payment rail instance."""
    global _rail

    if _rail is None:
        mode = settings.payment.rail

        if mode == PaymentRailMode.MOCK:
            from shared.payments.mock import MockPaymentRail

            _rail = MockPaymentRail()
        elif mode == PaymentRailMode.X402:
            from shared.payments.x402 import X402PaymentRail

            _rail = X402PaymentRail()
        else:
            raise ValueError(f"Unknown payment rail: {mode}")

        logger.info("payment_rail_initialized", mode=mode.value)

    return _rail


def set_payment_rail(rail: PaymentRail) -> None:
    """Set a custom payment rail."""
    global _rail
    _rail = rail
    logger.info("payment_rail_set", mode=rail.mode.value)


def reset_payment_rail() -> None:
    """Reset the rail to be re-initialized."""
    global _rail
    _rail = None

"""
Payment-Legitimacy Circuit
==========================

Checks at proving time that a query's escrowed payment matches the agent's
declared price curve within a tolerance band:

    expected = base_price + complexity * complexity_multiplier / scale
    accept iff |payment - expected| <= expected * tolerance

This is the same curve the query processor uses for the escrow minimum, so
a payment of exactly the quoted price always lands inside the band. Without
a declared multiplier the reference curve ``base_price * (1 + 2 * c / scale)``
applies. The band absorbs drift between the complexity estimated at
submission and the complexity observed while processing. Amounts are integer
base units.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from shared.zk.field import commit_hash, divide, greater_equal, less_equal, to_field


CIRCUIT_NAME = "query_processing"

# Base units per whole currency unit
AMOUNT_DECIMALS = 6

BPS_DENOMINATOR = 10000
AMOUNT_BIT_WIDTH = 128

# Public signal offsets read by the query processor
PAYMENT_VERIFIED_INDEX = 0
RESPONSE_COMMITMENT_INDEX = 1
EXPECTED_PAYMENT_INDEX = 2
PAYMENT_INDEX = 3
BASE_PRICE_INDEX = 4
COMPLEXITY_INDEX = 5
MULTIPLIER_INDEX = 6
TOLERANCE_INDEX = 7
QUERY_ID_INDEX = 8
AGENT_ID_INDEX = 9


def to_base_units(amount: Decimal | int | str) -> int:
    """Convert a currency amount to integer base units (truncating)."""
    return int(Decimal(amount).scaleb(AMOUNT_DECIMALS))


def from_base_units(units: int) -> Decimal:
    return Decimal(units).scaleb(-AMOUNT_DECIMALS)


@dataclass(frozen=True)
class PaymentVerification:
    """Witness and outputs of one payment-legitimacy evaluation."""

    verified: bool
    expected_payment: int
    response_commitment: int
    public_signals: list[int]
    circuit_inputs: dict[str, Any] = field(repr=False)
    computed_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class PaymentLegitimacyVerifier:
    """
    Tolerance-band payment check for query settlement.

    Args:
        tolerance_bps: Half-width of the acceptance band in basis points
        complexity_scale: Fixed-point scale of the complexity estimate
    """

    circuit_name = CIRCUIT_NAME

    def __init__(self, tolerance_bps: int = 1000, complexity_scale: int = 1000) -> None:
        if not 0 <= tolerance_bps <= BPS_DENOMINATOR:
            raise ValueError(f"tolerance_bps must be within 0..{BPS_DENOMINATOR}")
        self.tolerance_bps = tolerance_bps
        self.complexity_scale = complexity_scale

    @staticmethod
    def reference_multiplier(base_price: int) -> int:
        """Multiplier of the reference curve ``base * (1 + 2c / scale)``."""
        return 2 * base_price

    def expected_payment(
        self,
        base_price: int,
        complexity: int,
        complexity_multiplier: int | None = None,
    ) -> int:
        if complexity_multiplier is None:
            complexity_multiplier = self.reference_multiplier(base_price)
        return base_price + divide(complexity * complexity_multiplier, self.complexity_scale).quotient

    def verify(
        self,
        query_id: int | str,
        agent_id: str,
        payment: int,
        base_price: int,
        complexity: int,
        response_hash: int | str,
        complexity_multiplier: int | None = None,
    ) -> PaymentVerification:
        if complexity_multiplier is None:
            complexity_multiplier = self.reference_multiplier(base_price)
        expected = self.expected_payment(base_price, complexity, complexity_multiplier)

        scaled_payment = payment * BPS_DENOMINATOR
        lower = expected * (BPS_DENOMINATOR - self.tolerance_bps)
        upper = expected * (BPS_DENOMINATOR + self.tolerance_bps)

        verified = greater_equal(scaled_payment, lower, AMOUNT_BIT_WIDTH) * less_equal(
            scaled_payment, upper, AMOUNT_BIT_WIDTH
        )

        query_field = to_field(query_id)
        agent_field = to_field(agent_id)
        response_field = to_field(response_hash)
        commitment = commit_hash(query_field, agent_field, payment, verified, response_field)

        public_signals = [
            verified,
            commitment,
            expected,
            payment,
            base_price,
            complexity,
            complexity_multiplier,
            self.tolerance_bps,
            query_field,
            agent_field,
        ]

        return PaymentVerification(
            verified=bool(verified),
            expected_payment=expected,
            response_commitment=commitment,
            public_signals=public_signals,
            circuit_inputs={
                "payment": str(payment),
                "basePrice": str(base_price),
                "complexity": str(complexity),
                "complexityMultiplier": str(complexity_multiplier),
                "toleranceBps": str(self.tolerance_bps),
                "queryId": str(query_field),
                "agentId": str(agent_field),
                "responseHash": str(response_field),
            },
        )

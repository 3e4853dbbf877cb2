"""
Payments Module
===============

Payment rail abstraction: authorize query payments and settle revenue
splits between agent creators, royalty holders and the platform.

Supports:
- Mock (development/testing)
- x402 facilitator over HTTP

Usage:
    from shared.payments import get_payment_rail, RevenueSplit

    rail = get_payment_rail()
    await rail.distribute(amount, [RevenueSplit(recipient=creator, amount=amount)])
"""

from shared.payments.mock import MockPaymentRail
from shared.payments.rail import (
    PaymentAuthorization,
    PaymentRail,
    RevenueSplit,
    SplitValidationError,
    get_payment_rail,
    reset_payment_rail,
    set_payment_rail,
    validate_splits,
)
from shared.payments.x402 import PaymentRailError, X402PaymentRail


__all__ = [
    "PaymentRail",
    "PaymentAuthorization",
    "RevenueSplit",
    "SplitValidationError",
    "PaymentRailError",
    "validate_splits",
    "get_payment_rail",
    "set_payment_rail",
    "reset_payment_rail",
    "MockPaymentRail",
    "X402PaymentRail",
]

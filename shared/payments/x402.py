"""
x402 Payment Rail
=================

HTTP adapter for an x402-style payment facilitator:

- ``POST {endpoint}/verify`` with ``{signature, amount, token}`` answers
  ``{"valid": true|false}``
- ``POST {endpoint}/distribute`` with ``{amount, splits}`` settles the
  revenue shares

Version: 0.1.0
"""

from decimal import Decimal

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.config import PaymentRailMode, settings
from shared.logging import get_logger
from shared.payments.rail import (
    PaymentAuthorization,
    PaymentRail,
    RevenueSplit,
    validate_splits,
)


logger = get_logger(__name__)


class PaymentRailError(RuntimeError):
    """The facilitator rejected or failed a settlement."""


class X402PaymentRail(PaymentRail):
    """x402 facilitator client."""

    def __init__(
        self,
        endpoint: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the rail.

        Args:
            endpoint: Facilitator base URL (default from settings)
            api_key: Bearer token, if the facilitator requires one
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self._endpoint = (endpoint or settings.payment.x402_endpoint).rstrip("/")
        key = api_key if api_key is not None else settings.payment.api_key.get_secret_value()
        headers = {"Authorization": f"Bearer {key}"} if key else {}

        self._client = httpx.AsyncClient(
            base_url=self._endpoint,
            timeout=httpx.Timeout(timeout or settings.payment.timeout_seconds),
            headers=headers,
            transport=transport,
        )

        logger.debug("x402_rail_initialized", endpoint=self._endpoint)

    @property
    def mode(self) -> PaymentRailMode:
        return PaymentRailMode.X402

    @retry(
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "x402_retry",
            attempt=retry_state.attempt_number,
        ),
    )
    async def _post(self, path: str, payload: dict) -> httpx.Response:
        return await self._client.post(path, json=payload)

    async def verify(self, authorization: PaymentAuthorization) -> bool:
        try:
            response = await self._post(
                "/verify",
                {
                    "signature": authorization.signature,
                    "amount": str(authorization.amount),
                    "token": authorization.token,
                },
            )
            response.raise_for_status()
            valid = response.json().get("valid") is True
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("x402_payment_verification_failed", error=str(e))
            return False

        logger.info("x402_payment_verified", amount=str(authorization.amount), valid=valid)
        return valid

    async def distribute(self, amount: Decimal, splits: list[RevenueSplit]) -> None:
        validate_splits(amount, splits)

        try:
            response = await self._post(
                "/distribute",
                {
                    "amount": str(amount),
                    "splits": [
                        {
                            "recipient": s.recipient,
                            "amount": str(s.amount),
                            "percentage": str(s.percentage_of(amount)),
                        }
                        for s in splits
                    ],
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("x402_revenue_distribution_failed", error=str(e))
            raise PaymentRailError(f"Revenue distribution failed: {e}") from e

        logger.info("x402_revenue_distributed", amount=str(amount), recipients=len(splits))

    async def health_check(self) -> dict:
        return {"status": "healthy", "mode": self.mode.value, "endpoint": self._endpoint}

    async def close(self) -> None:
        await self._client.aclose()

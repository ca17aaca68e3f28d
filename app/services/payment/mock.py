"""
Mock Payment Service Implementation

Simulates Stripe Checkout without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Test the complete checkout flow locally
    - Replay webhook events with plain JSON bodies
    - Develop without internet connectivity

Behavior:
    - Simulates configurable response times
    - Optionally fails a fraction of session requests
    - Generates Stripe-like IDs (cs_mock_xxx)
    - Records every created session for inspection
"""

import asyncio
import hmac
import json
import logging
import random
import uuid
from datetime import datetime
from typing import Optional

from app.core.exceptions import WebhookVerificationError
from app.services.payment.base import (
    BasePaymentService,
    CheckoutSessionResult,
    LineItem,
)

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        checkout_base_url: Base of the fake hosted-checkout URL
        webhook_secret: When set, the signature header must equal it
        failure_rate: Probability of simulated provider failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        return_url: Set to False to simulate a session without a redirect URL
        sessions: Every session created so far, newest last

    Example:
        >>> service = MockPaymentService(min_latency=0, max_latency=0)
        >>> result = await service.create_checkout_session(...)
        >>> service.sessions[-1]["metadata"]["orderId"]
    """

    def __init__(
        self,
        checkout_base_url: str = "http://localhost:5173/mock-checkout",
        webhook_secret: Optional[str] = None,
        failure_rate: float = 0.0,
        min_latency: float = 0.05,
        max_latency: float = 0.2,
        return_url: bool = True,
    ):
        self.checkout_base_url = checkout_base_url.rstrip("/")
        self.webhook_secret = webhook_secret
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.return_url = return_url
        self.sessions: list[dict] = []

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _generate_session_id(self) -> str:
        """Generate a Stripe-like checkout session ID."""
        return f"cs_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Actual latency in milliseconds
        """
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        """Determine if this request should simulate a failure."""
        return random.random() < self.failure_rate

    async def create_checkout_session(
        self,
        line_items: list[LineItem],
        shipping_amount: int,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResult:
        """Simulate creating a hosted checkout session."""
        latency_ms = await self._simulate_latency()

        if self._should_fail():
            logger.debug("Mock: Checkout session request failed")
            return CheckoutSessionResult(
                success=False,
                error_message="An error occurred while processing your request.",
                error_code="processing_error",
                response_time_ms=latency_ms,
            )

        session_id = self._generate_session_id()
        url = f"{self.checkout_base_url}/{session_id}" if self.return_url else None

        self.sessions.append({
            "id": session_id,
            "url": url,
            "line_items": list(line_items),
            "shipping_amount": shipping_amount,
            "metadata": dict(metadata),
            "success_url": success_url,
            "cancel_url": cancel_url,
            "created_at": datetime.now(),
        })

        logger.info(
            f"Mock: Checkout session created - {session_id} "
            f"(order={metadata.get('orderId')})"
        )

        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            url=url,
            response_time_ms=latency_ms,
            metadata=dict(metadata),
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> dict:
        """
        Simulate webhook verification.

        Without a configured secret any signature is accepted; the payload
        still has to be a JSON event object.
        """
        if self.webhook_secret is not None and not hmac.compare_digest(
            signature or "", self.webhook_secret
        ):
            logger.warning("Mock: Webhook signature mismatch")
            raise WebhookVerificationError(
                "No signatures found matching the expected signature for payload"
            )

        try:
            event = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning("Mock: Invalid webhook payload")
            raise WebhookVerificationError(f"Invalid payload: {e}")

        if not isinstance(event, dict) or "type" not in event:
            raise WebhookVerificationError("Invalid payload: missing event type")

        return event

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        logger.debug("Mock: Health check passed")
        return True

"""
Stripe Payment Service Implementation

Production implementation using the official Stripe Python SDK and
Stripe Checkout (hosted payment page).
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
    - STRIPE_WEBHOOK_SECRET for webhook verification

Security Notes:
    - Prices always come from the database, never from the client
    - Always verify webhook signatures
"""

import json
import logging
from datetime import datetime
from typing import Optional

import stripe

from app.core.config import Settings
from app.core.exceptions import WebhookVerificationError
from app.services.payment.base import (
    BasePaymentService,
    CheckoutSessionResult,
    LineItem,
)

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    """
    Production Stripe payment service implementation.

    Uses an explicitly constructed ``stripe.StripeClient`` instead of the
    SDK's module-level API key.

    Configuration:
        Requires STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET.

    Example:
        >>> service = StripePaymentService(settings)
        >>> result = await service.create_checkout_session(...)
    """

    API_VERSION = "2023-10-16"  # Pin API version for stability

    def __init__(self, settings: Settings):
        """
        Initialize the Stripe client from settings.

        Raises:
            ValueError: If STRIPE_SECRET_KEY or STRIPE_WEBHOOK_SECRET is missing
        """
        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required outside development mode. "
                "Set it in your .env file or environment variables."
            )
        if not settings.stripe_webhook_secret:
            raise ValueError(
                "STRIPE_WEBHOOK_SECRET is required outside development mode. "
                "Set it in your .env file or environment variables."
            )

        self._client = stripe.StripeClient(
            settings.stripe_secret_key,
            stripe_version=self.API_VERSION,
        )
        self._webhook_secret = settings.stripe_webhook_secret
        self._currency = settings.stripe_currency

        logger.info(
            f"StripePaymentService initialized "
            f"(api_version={self.API_VERSION}, currency={self._currency})"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "stripe"

    def _build_line_item(self, item: LineItem) -> dict:
        return {
            "price_data": {
                "currency": self._currency,
                "unit_amount": item.unit_amount,
                "product_data": {
                    "name": item.name,
                },
            },
            "quantity": item.quantity,
        }

    async def create_checkout_session(
        self,
        line_items: list[LineItem],
        shipping_amount: int,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResult:
        """
        Create a Stripe Checkout session in payment mode.

        Delivery is charged as a fixed-amount shipping option rather than a
        line item so it shows separately on the hosted page.
        """
        start_time = datetime.now()

        logger.info(
            f"Stripe: Creating checkout session "
            f"({len(line_items)} line items, order={metadata.get('orderId')})"
        )

        try:
            session = self._client.checkout.sessions.create(
                params={
                    "line_items": [self._build_line_item(i) for i in line_items],
                    "shipping_options": [
                        {
                            "shipping_rate_data": {
                                "display_name": "Delivery",
                                "type": "fixed_amount",
                                "fixed_amount": {
                                    "amount": shipping_amount,
                                    "currency": self._currency,
                                },
                            }
                        }
                    ],
                    "mode": "payment",
                    "metadata": metadata,
                    "success_url": success_url,
                    "cancel_url": cancel_url,
                }
            )

            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

            logger.info(f"Stripe: Checkout session created - {session.id}")

            return CheckoutSessionResult(
                success=True,
                session_id=session.id,
                url=session.url,
                response_time_ms=elapsed_ms,
                metadata=dict(metadata),
            )

        except stripe.InvalidRequestError as e:
            # Invalid parameters
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Invalid request - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message=e.user_message or str(e),
                error_code="invalid_request",
                response_time_ms=elapsed_ms,
            )

        except stripe.AuthenticationError as e:
            # API key issues
            logger.critical(f"Stripe: Authentication failed - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )

        except stripe.APIConnectionError as e:
            # Network issues
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Connection error - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=elapsed_ms,
            )

        except stripe.StripeError as e:
            # Generic Stripe error
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Error - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message=e.user_message or "Payment processing error",
                error_code="stripe_error",
                response_time_ms=elapsed_ms,
            )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> dict:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw request body (must not be re-serialized)
            signature: Stripe-Signature header value

        Raises:
            WebhookVerificationError: Missing/invalid signature or malformed payload
        """
        if not signature:
            raise WebhookVerificationError("No signatures found matching the expected signature for payload")

        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                self._webhook_secret,
            )
            event = json.loads(payload)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe: Webhook signature invalid - {e}")
            raise WebhookVerificationError(str(e))
        except ValueError as e:
            logger.warning(f"Stripe: Webhook payload invalid - {e}")
            raise WebhookVerificationError(str(e))

        logger.debug(f"Stripe: Webhook verified - {event['type']}")
        return event

    async def health_check(self) -> bool:
        """
        Verify Stripe API connectivity.

        Makes a lightweight API call to verify credentials and connectivity.
        """
        try:
            self._client.balance.retrieve()
            logger.debug("Stripe: Health check passed")
            return True

        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False

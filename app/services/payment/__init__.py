"""
Payment Service Factory

Provides a single entry point for building the payment service.
The factory pattern allows the rest of the application to remain agnostic
about which implementation is being used.

Usage:
    from app.services.payment import build_payment_service

    # Built once in the application lifespan and kept on app.state
    payment_service = build_payment_service(settings)

Environment Switching:
    - ENV_MODE=development → MockPaymentService (no API calls)
    - ENV_MODE=staging → StripePaymentService (test keys)
    - ENV_MODE=production → StripePaymentService (live keys)
"""

import logging

from app.core.config import Settings
from app.services.payment.base import (
    BasePaymentService,
    CheckoutSessionResult,
    LineItem,
)
from app.services.payment.mock import MockPaymentService
from app.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


def build_payment_service(settings: Settings) -> BasePaymentService:
    """
    Build the configured payment service instance.

    Returns:
        BasePaymentService: MockPaymentService in development,
        StripePaymentService otherwise

    Raises:
        ValueError: If real services are requested but Stripe keys are missing
    """
    if settings.is_development:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService(
            checkout_base_url=f"{settings.frontend_url.rstrip('/')}/mock-checkout",
            webhook_secret=settings.stripe_webhook_secret,
        )

    logger.info(
        f"Payment Service: Using StripePaymentService "
        f"({settings.env_mode.value} mode)"
    )
    return StripePaymentService(settings)


__all__ = [
    "build_payment_service",
    "BasePaymentService",
    "CheckoutSessionResult",
    "LineItem",
    "MockPaymentService",
    "StripePaymentService",
]

"""
Payment Service Abstract Base Class

Defines the interface contract for all payment service implementations.
Both MockPaymentService and StripePaymentService must implement these methods,
ensuring the checkout workflow behaves identically regardless of which
service is active.

Design Pattern: Strategy Pattern
    - Allows runtime switching between payment providers
    - Facilitates testing with mock implementations
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class LineItem:
    """
    One priced row on the hosted checkout page.

    Attributes:
        name: Product name shown to the customer
        unit_amount: Price in minor currency units (cents/centavos)
        quantity: Number of units
    """
    name: str
    unit_amount: int
    quantity: int


@dataclass
class CheckoutSessionResult:
    """
    Standardized result from creating a hosted checkout session.

    Attributes:
        success: Whether the provider accepted the request
        session_id: Provider session identifier (Stripe format: cs_xxx)
        url: Redirect URL for the customer; may be empty even on success
        error_message: Provider error description if the request failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider call
    """
    success: bool
    session_id: Optional[str] = None
    url: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> result = await payment_service.create_checkout_session(
        ...     line_items=[LineItem("Adobo", 18000, 2)],
        ...     shipping_amount=5000,
        ...     metadata={"orderId": "...", "restaurantId": "..."},
        ...     success_url="https://app/order-status?success=true",
        ...     cancel_url="https://app/detail/r1?cancelled=true",
        ... )
        >>> if result.success and result.url:
        ...     redirect(result.url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider (e.g. "mock", "stripe")."""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: list[LineItem],
        shipping_amount: int,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResult:
        """
        Request a provider-hosted checkout session.

        Args:
            line_items: Priced rows, amounts in minor units
            shipping_amount: Fixed delivery charge in minor units
            metadata: Opaque correlation data echoed back by the webhook
            success_url: Redirect target after payment
            cancel_url: Redirect target when the customer cancels

        Returns:
            CheckoutSessionResult: Standardized result object
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> dict:
        """
        Verify and parse a webhook from the payment provider.

        Args:
            payload: Raw request body bytes
            signature: Signature header from the request

        Returns:
            dict: Parsed webhook event

        Raises:
            WebhookVerificationError: If the event cannot be authenticated
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the payment service.

        Returns:
            bool: True if service is reachable and operational
        """
        pass

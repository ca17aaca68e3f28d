"""
Order / Payment Workflow

The one stateful flow in the system:

    placed ──(Stripe webhook)──▶ paid ──(owner)──▶ inProgress ──▶ outForDelivery ──▶ delivered

1. ``create_checkout_session`` prices the cart from the restaurant's menu,
   asks the payment provider for a hosted checkout session and, only once a
   redirect URL exists, persists the order in ``placed`` state.
2. ``handle_webhook`` marks the order ``paid`` and records the amount the
   provider actually charged.
3. ``update_order_status`` lets the restaurant owner move the order along.
   Any status is accepted, including moving backwards.

The order id is generated before the provider call so it can travel as
session metadata. If the process dies between the provider call and the
commit, the session exists without a local order and the later webhook is
answered with 404.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    NotFoundError,
    UnauthorizedError,
    UpstreamFailure,
    ValidationError,
)
from app.models import MenuItem, Order, OrderStatus, Restaurant, new_id, utcnow
from app.schemas import CartItem, CheckoutSessionRequest
from app.services.payment import BasePaymentService, CheckoutSessionResult, LineItem
from app.services.restaurants import get_my_restaurant

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def to_minor_units(amount: float) -> int:
    """350 -> 35000 (pesos to centavos)."""
    return int(round(amount * 100))


def build_line_items(cart_items: list[CartItem], menu_items: list[MenuItem]) -> list[LineItem]:
    """
    Price every cart row from the stored menu.

    Raises:
        ValidationError: A cart row references a menu item that is not (or
            no longer) on the menu
    """
    menu = {item.id: item for item in menu_items}
    line_items = []

    for cart_item in cart_items:
        menu_item = menu.get(str(cart_item.menu_item_id))
        if menu_item is None:
            raise ValidationError(f"Menu item not found: {cart_item.menu_item_id}")

        line_items.append(LineItem(
            name=menu_item.name,
            unit_amount=to_minor_units(menu_item.price),
            quantity=cart_item.quantity,
        ))

    return line_items


class OrderWorkflow:
    """
    Checkout, payment reconciliation and order status updates.

    Built once per process with its collaborators; each call receives the
    request's database session.

    Attributes:
        payment: Payment provider used for checkout sessions and webhooks
        frontend_url: Base for the provider's success/cancel redirects
    """

    def __init__(self, payment: BasePaymentService, frontend_url: str):
        self.payment = payment
        self.frontend_url = frontend_url.rstrip("/")

    def success_url(self) -> str:
        return f"{self.frontend_url}/order-status?success=true"

    def cancel_url(self, restaurant_id: str) -> str:
        return f"{self.frontend_url}/detail/{restaurant_id}?cancelled=true"

    # =========================================================================
    # CHECKOUT
    # =========================================================================

    async def create_checkout_session(
        self,
        db: AsyncSession,
        user_id: str,
        request: CheckoutSessionRequest,
    ) -> CheckoutSessionResult:
        """
        Start checkout for the user's cart.

        Returns:
            CheckoutSessionResult with the redirect ``url``

        Raises:
            NotFoundError: Unknown restaurant
            ValidationError: Cart references a missing menu item
            UpstreamFailure: Provider error or no redirect URL returned
        """
        restaurant = await db.get(Restaurant, request.restaurant_id)
        if not restaurant:
            raise NotFoundError("Restaurant not found")

        line_items = build_line_items(request.cart_items, restaurant.menu_items)

        details = request.delivery_details
        order = Order(
            id=new_id(),
            restaurant_id=restaurant.id,
            user_id=user_id,
            delivery_email=details.email,
            delivery_name=details.name,
            delivery_address_line1=details.address_line1,
            delivery_city=details.city,
            delivery_country=details.country,
            cart_items=[item.model_dump(by_alias=True) for item in request.cart_items],
            status=OrderStatus.PLACED,
            created_at=utcnow(),
        )

        result = await self.payment.create_checkout_session(
            line_items=line_items,
            shipping_amount=to_minor_units(restaurant.delivery_price),
            metadata={"orderId": order.id, "restaurantId": restaurant.id},
            success_url=self.success_url(),
            cancel_url=self.cancel_url(restaurant.id),
        )

        if not result.success:
            logger.error(
                f"Checkout session failed for order {order.id}: "
                f"{result.error_code} {result.error_message}"
            )
            raise UpstreamFailure(result.error_message or "Error creating stripe session")

        if not result.url:
            logger.error(f"Checkout session {result.session_id} has no redirect URL")
            raise UpstreamFailure("Error creating stripe session")

        db.add(order)
        await db.commit()

        logger.info(
            f"Order {order.id} placed for restaurant {restaurant.id} "
            f"(session={result.session_id})"
        )
        return result

    # =========================================================================
    # PAYMENT WEBHOOK
    # =========================================================================

    async def handle_webhook(
        self,
        db: AsyncSession,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[Order]:
        """
        Reconcile an order from a payment provider event.

        Returns:
            The paid order for completed-checkout events, otherwise None

        Raises:
            WebhookVerificationError: Signature or payload rejected (400)
            NotFoundError: Completed checkout for an unknown order (404)
        """
        event = await self.payment.verify_webhook(payload, signature)
        event_type = event.get("type")

        if event_type != CHECKOUT_COMPLETED:
            logger.debug(f"Ignoring webhook event {event_type}")
            return None

        data = event.get("data")
        session = data.get("object") if isinstance(data, dict) else None
        if not isinstance(session, dict):
            session = {}
        metadata = session.get("metadata")
        order_id = metadata.get("orderId") if isinstance(metadata, dict) else None
        if not isinstance(order_id, str) or not order_id:
            logger.warning(f"Completed checkout without an order id: {order_id!r}")
            raise NotFoundError("Order not found")

        try:
            order = await db.get(Order, order_id)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(f"Could not load order {order_id} for webhook")
            return None

        if not order:
            logger.warning(f"Webhook for unknown order {order_id!r}")
            raise NotFoundError("Order not found")

        amount_total = session.get("amount_total")
        if isinstance(amount_total, bool) or not isinstance(amount_total, int):
            amount_total = None
        order.total_amount = amount_total
        order.status = OrderStatus.PAID

        try:
            await db.commit()
        except SQLAlchemyError:
            # The provider must still get a 2xx once the event is authentic
            await db.rollback()
            logger.exception(f"Could not mark order {order.id} as paid")
            return None

        logger.info(f"Order {order.id} paid (amount_total={order.total_amount})")
        return order

    # =========================================================================
    # RESTAURANT-SIDE STATUS
    # =========================================================================

    async def update_order_status(
        self,
        db: AsyncSession,
        user_id: str,
        order_id: str,
        status: OrderStatus,
    ) -> Order:
        """
        Overwrite an order's status. Only the restaurant owner may do this.

        Raises:
            NotFoundError: Unknown order or its restaurant is gone
            UnauthorizedError: Caller does not own the order's restaurant
        """
        order = await db.get(Order, order_id)
        if not order:
            raise NotFoundError("order not found")

        restaurant = await db.get(Restaurant, order.restaurant_id)
        if not restaurant:
            raise NotFoundError("restaurant not found")

        if restaurant.user_id != user_id:
            raise UnauthorizedError(
                f"User {user_id} does not own restaurant {restaurant.id}"
            )

        previous = order.status
        order.status = status
        await db.commit()

        logger.info(f"Order {order.id} status {previous.value} -> {status.value}")
        return order

    # =========================================================================
    # LISTINGS
    # =========================================================================

    async def get_my_orders(self, db: AsyncSession, user_id: str) -> list[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_my_restaurant_orders(self, db: AsyncSession, user_id: str) -> list[Order]:
        """
        Raises:
            NotFoundError: The caller owns no restaurant
        """
        restaurant = await get_my_restaurant(db, user_id)
        result = await db.execute(
            select(Order)
            .where(Order.restaurant_id == restaurant.id)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

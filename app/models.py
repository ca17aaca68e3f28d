"""
SQLAlchemy Database Models

Document-shaped records for the food ordering backend:
- Users provisioned from the identity provider
- Restaurants with their cuisines and menu items
- Orders created at checkout and reconciled by the Stripe webhook
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import relationship

from app.database import Base


def new_id() -> str:
    """Generate a document id (assigned client side so it is known before save)."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status workflow: placed -> paid -> inProgress -> outForDelivery -> delivered."""
    PLACED = "placed"
    PAID = "paid"
    IN_PROGRESS = "inProgress"
    OUT_FOR_DELIVERY = "outForDelivery"
    DELIVERED = "delivered"


class User(Base):
    """
    Local account mapped to an identity-provider subject.

    Only ``auth0_id`` and ``email`` are required; the profile fields are
    filled in later through the profile update endpoint.
    """
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    auth0_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    address_line1 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)

    def __repr__(self):
        return f"<User {self.id} - {self.auth0_id}>"


class Restaurant(Base):
    """
    A restaurant owned by exactly one user.

    Cuisines and menu items live in child tables but are only ever read and
    written through their restaurant.
    """
    __tablename__ = "restaurants"

    id = Column(String(32), primary_key=True, default=new_id)
    # One restaurant per user is checked by the catalog service, not here
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)

    restaurant_name = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    country = Column(String(100), nullable=False)
    delivery_price = Column(Float, nullable=False)
    estimated_delivery_time = Column(Integer, nullable=False)
    image_url = Column(String(500), nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    cuisine_rows = relationship(
        "RestaurantCuisine",
        order_by="RestaurantCuisine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    menu_items = relationship(
        "MenuItem",
        order_by="MenuItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    user = relationship("User", lazy="selectin")

    @property
    def cuisines(self) -> list[str]:
        return [row.name for row in self.cuisine_rows]

    @cuisines.setter
    def cuisines(self, names: list[str]) -> None:
        self.cuisine_rows = [
            RestaurantCuisine(name=name, position=index)
            for index, name in enumerate(names)
        ]

    def __repr__(self):
        return f"<Restaurant {self.id} - {self.restaurant_name} ({self.city})>"


class RestaurantCuisine(Base):
    __tablename__ = "restaurant_cuisines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(
        String(32),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(50), nullable=False)


class MenuItem(Base):
    """
    Menu entry embedded in a restaurant.

    The id is generated on creation and kept across menu updates because
    checkout sessions and cart items reference it.
    """
    __tablename__ = "menu_items"

    id = Column(String(32), primary_key=True, default=new_id)
    restaurant_id = Column(
        String(32),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)

    def __repr__(self):
        return f"<MenuItem {self.id} - {self.name} ({self.price})>"


class Order(Base):
    """
    Order created at checkout.

    ``total_amount`` stays empty until Stripe reports the completed session;
    it is stored in minor currency units exactly as Stripe sends it.
    """
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=new_id)
    restaurant_id = Column(String(32), ForeignKey("restaurants.id"), nullable=False, index=True)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)

    # =========================================================================
    # DELIVERY DETAILS (snapshot taken at checkout)
    # =========================================================================
    delivery_email = Column(String(255), nullable=False)
    delivery_name = Column(String(100), nullable=False)
    delivery_address_line1 = Column(String(255), nullable=False)
    delivery_city = Column(String(100), nullable=False)
    delivery_country = Column(String(100), nullable=False)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    cart_items = Column(JSON, nullable=False)  # [{menuItemId, quantity, name}]
    total_amount = Column(Integer, nullable=True)

    status = Column(
        Enum(
            OrderStatus,
            name="order_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=OrderStatus.PLACED,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    restaurant = relationship("Restaurant", lazy="selectin")
    user = relationship("User", lazy="selectin")

    @property
    def delivery_details(self) -> dict:
        return {
            "email": self.delivery_email,
            "name": self.delivery_name,
            "address_line1": self.delivery_address_line1,
            "city": self.delivery_city,
            "country": self.delivery_country,
        }

    def __repr__(self):
        return f"<Order {self.id} - {self.status.value}>"

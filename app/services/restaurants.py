"""
Catalog Store

CRUD for restaurants and their embedded menus. Each user owns at most one
restaurant; the rule is enforced here with an existence check.

Images are uploaded before the database write. If the write then fails the
stored image is orphaned; it is not cleaned up or retried.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, UpstreamFailure
from app.forms import ImageFile
from app.models import MenuItem, Restaurant, new_id, utcnow
from app.schemas import MenuItemIn, RestaurantForm
from app.services.storage import BaseStorageService

logger = logging.getLogger(__name__)


async def find_restaurant_for_user(db: AsyncSession, user_id: str) -> Optional[Restaurant]:
    result = await db.execute(select(Restaurant).where(Restaurant.user_id == user_id))
    return result.scalars().first()


async def get_my_restaurant(db: AsyncSession, user_id: str) -> Restaurant:
    restaurant = await find_restaurant_for_user(db, user_id)
    if not restaurant:
        raise NotFoundError("Restaurant not found")
    return restaurant


async def get_restaurant(db: AsyncSession, restaurant_id: str) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if not restaurant:
        raise NotFoundError("Restaurant not found")
    return restaurant


async def upload_image(storage: BaseStorageService, image: ImageFile) -> str:
    result = await storage.upload_image(image.data, image.content_type)
    if not result.success or not result.url:
        raise UpstreamFailure(result.error_message or "Error uploading image")
    return result.url


def build_menu(restaurant: Restaurant, items: list[MenuItemIn]) -> list[MenuItem]:
    """
    Turn submitted menu rows into MenuItem objects.

    Rows that send back the id of one of this restaurant's current items keep
    that item (and its id); any other row becomes a new item with a fresh id.
    """
    current = {item.id: item for item in (restaurant.menu_items or [])}
    menu = []

    for position, row in enumerate(items):
        item = current.pop(row.id, None) if row.id else None
        if item is None:
            item = MenuItem(id=new_id())
        item.name = row.name
        item.price = row.price
        item.position = position
        menu.append(item)

    return menu


def apply_form(restaurant: Restaurant, form: RestaurantForm) -> None:
    """Full overwrite of every owner-editable field."""
    restaurant.restaurant_name = form.restaurant_name
    restaurant.city = form.city
    restaurant.country = form.country
    restaurant.delivery_price = form.delivery_price
    restaurant.estimated_delivery_time = form.estimated_delivery_time
    restaurant.cuisines = form.cuisines
    restaurant.menu_items = build_menu(restaurant, form.menu_items)
    restaurant.last_updated = utcnow()


async def create_my_restaurant(
    db: AsyncSession,
    storage: BaseStorageService,
    user_id: str,
    form: RestaurantForm,
    image: ImageFile,
) -> Restaurant:
    """
    Create the caller's restaurant.

    Raises:
        ConflictError: If the user already owns a restaurant
        UpstreamFailure: If the image upload fails
    """
    existing = await find_restaurant_for_user(db, user_id)
    if existing:
        raise ConflictError("User restaurant already exists")

    image_url = await upload_image(storage, image)

    restaurant = Restaurant(id=new_id(), user_id=user_id, image_url=image_url)
    apply_form(restaurant, form)

    db.add(restaurant)
    await db.commit()

    logger.info(f"Restaurant {restaurant.id} created for user {user_id}")
    return restaurant


async def update_my_restaurant(
    db: AsyncSession,
    storage: BaseStorageService,
    user_id: str,
    form: RestaurantForm,
    image: Optional[ImageFile] = None,
) -> Restaurant:
    """
    Update the caller's restaurant. The image is replaced only when a new
    one is supplied.

    Raises:
        NotFoundError: If the user owns no restaurant
        UpstreamFailure: If the image upload fails
    """
    restaurant = await get_my_restaurant(db, user_id)

    if image is not None:
        restaurant.image_url = await upload_image(storage, image)
    apply_form(restaurant, form)

    await db.commit()

    logger.info(f"Restaurant {restaurant.id} updated")
    return restaurant

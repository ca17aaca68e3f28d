"""
Restaurant Search

Read-only, paginated restaurant search. Filters are collected by
``RestaurantFilter`` as explicit (field, operator, value) predicates and only
turned into SQLAlchemy clauses at query time:

    city                  CONTAINS       "manila"
    cuisines              CONTAINS_ALL   ["italian", "vegan"]
    ANY OF:
        restaurant_name   CONTAINS       "pizza"
        cuisines          CONTAINS       "pizza"

All string matching is case-insensitive substring matching.
"""

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Union

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Restaurant, RestaurantCuisine

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

SORT_COLUMNS = {
    "lastUpdated": Restaurant.last_updated,
    "deliveryPrice": Restaurant.delivery_price,
    "estimatedDeliveryTime": Restaurant.estimated_delivery_time,
    "restaurantName": Restaurant.restaurant_name,
}


class Operator(str, enum.Enum):
    CONTAINS = "contains"
    CONTAINS_ALL = "contains_all"


class SearchField(str, enum.Enum):
    CITY = "city"
    RESTAURANT_NAME = "restaurant_name"
    CUISINES = "cuisines"


@dataclass(frozen=True)
class Predicate:
    field: SearchField
    operator: Operator
    value: Union[str, tuple[str, ...]]


@dataclass(frozen=True)
class AnyOf:
    predicates: tuple[Predicate, ...]


@dataclass
class SearchParams:
    search_query: Optional[str] = None
    selected_cuisines: Optional[str] = None
    sort_option: str = "lastUpdated"
    page: int = 1


def _like(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _contains(fld: SearchField, value: str):
    pattern = _like(value)
    if fld is SearchField.CUISINES:
        return Restaurant.cuisine_rows.any(RestaurantCuisine.name.ilike(pattern, escape="\\"))
    column = {
        SearchField.CITY: Restaurant.city,
        SearchField.RESTAURANT_NAME: Restaurant.restaurant_name,
    }[fld]
    return column.ilike(pattern, escape="\\")


def compile_predicate(predicate: Union[Predicate, AnyOf]):
    """Turn one predicate into a SQLAlchemy boolean clause."""
    if isinstance(predicate, AnyOf):
        return or_(*(compile_predicate(p) for p in predicate.predicates))

    if predicate.operator is Operator.CONTAINS:
        return _contains(predicate.field, predicate.value)

    if predicate.operator is Operator.CONTAINS_ALL:
        return and_(*(_contains(predicate.field, v) for v in predicate.value))

    raise ValueError(f"Unsupported operator {predicate.operator}")


@dataclass
class RestaurantFilter:
    """Builder for the restaurant search predicate (all entries are ANDed)."""
    predicates: list = field(default_factory=list)

    def in_city(self, city: str) -> "RestaurantFilter":
        self.predicates.append(Predicate(SearchField.CITY, Operator.CONTAINS, city))
        return self

    def with_all_cuisines(self, cuisines: list[str]) -> "RestaurantFilter":
        if cuisines:
            self.predicates.append(
                Predicate(SearchField.CUISINES, Operator.CONTAINS_ALL, tuple(cuisines))
            )
        return self

    def matching_text(self, text: str) -> "RestaurantFilter":
        if text:
            self.predicates.append(AnyOf((
                Predicate(SearchField.RESTAURANT_NAME, Operator.CONTAINS, text),
                Predicate(SearchField.CUISINES, Operator.CONTAINS, text),
            )))
        return self

    def clauses(self) -> list:
        return [compile_predicate(p) for p in self.predicates]


def parse_page(raw: Optional[str]) -> int:
    """Lenient page number: anything that is not a positive integer is page 1."""
    try:
        page = int(raw)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def parse_cuisines(selected_cuisines: Optional[str]) -> list[str]:
    """Split a comma-separated cuisine list, dropping blanks."""
    if not selected_cuisines:
        return []
    return [c.strip() for c in selected_cuisines.split(",") if c.strip()]


async def _count(db: AsyncSession, clauses: list) -> int:
    result = await db.execute(
        select(func.count()).select_from(Restaurant).where(*clauses)
    )
    return result.scalar() or 0


async def search_restaurants(
    db: AsyncSession,
    city: str,
    params: SearchParams,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> dict:
    """
    Search restaurants in a city.

    An unknown ``sort_option`` sorts on nothing but the id tie-break.

    Returns:
        {"data": [Restaurant, ...], "pagination": {"total", "page", "pages"}}
    """
    sort_column = SORT_COLUMNS.get(params.sort_option)
    if sort_column is None:
        logger.debug(f"Unknown sortOption {params.sort_option!r}, using id order")
        order_by = (Restaurant.id.asc(),)
    else:
        order_by = (sort_column.asc(), Restaurant.id.asc())

    page = max(params.page, 1)
    restaurant_filter = RestaurantFilter().in_city(city)

    # A city with no restaurants at all is answered without running the filters
    if await _count(db, restaurant_filter.clauses()) == 0:
        return {"data": [], "pagination": {"total": 0, "page": 1, "pages": 1}}

    restaurant_filter.with_all_cuisines(parse_cuisines(params.selected_cuisines))
    restaurant_filter.matching_text((params.search_query or "").strip())
    clauses = restaurant_filter.clauses()

    total = await _count(db, clauses)

    result = await db.execute(
        select(Restaurant)
        .where(*clauses)
        .order_by(*order_by)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    restaurants = list(result.scalars().all())

    logger.debug(
        f"Search city={city!r} cuisines={params.selected_cuisines!r} "
        f"q={params.search_query!r} -> {total} matches"
    )

    return {
        "data": restaurants,
        "pagination": {
            "total": total,
            "page": page,
            "pages": math.ceil(total / page_size),
        },
    }

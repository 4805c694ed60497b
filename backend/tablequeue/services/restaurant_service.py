"""
Restaurant, queue settings and customer lookups.

These are the collaborators the queue engine reads from: which restaurant
a request is scoped to, what its queue limits are, and which CRM record a
guest maps to.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import pytz
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tablequeue.config import get_settings
from tablequeue.models import Customer, QueueSettings, Restaurant
from tablequeue.services.errors import CustomerNotFound, RestaurantNotFound, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueLimits:
    """Effective queue settings for a restaurant."""
    max_party_size: int
    queue_capacity: int
    tolerance_minutes: int


async def get_restaurant(db: AsyncSession, restaurant_id: UUID) -> Restaurant:
    result = await db.execute(
        select(Restaurant).where(Restaurant.id == restaurant_id)
    )
    restaurant = result.scalar_one_or_none()

    if not restaurant:
        raise RestaurantNotFound(restaurant_id)

    return restaurant


async def get_restaurant_by_slug(db: AsyncSession, slug: str) -> Restaurant:
    result = await db.execute(
        select(Restaurant).where(Restaurant.slug == slug)
    )
    restaurant = result.scalar_one_or_none()

    if not restaurant:
        raise RestaurantNotFound(slug)

    return restaurant


async def create_restaurant(
    db: AsyncSession,
    name: str,
    slug: str,
    timezone: Optional[str] = None,
) -> Restaurant:
    timezone = timezone or get_settings().default_timezone
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError:
        raise ValidationFailed(f"Unknown timezone '{timezone}'")

    existing = await db.execute(
        select(Restaurant).where(Restaurant.slug == slug)
    )
    if existing.scalar_one_or_none():
        raise ValidationFailed(f"Restaurant with slug '{slug}' already exists")

    restaurant = Restaurant(
        id=uuid.uuid4(),
        name=name,
        slug=slug,
        timezone=timezone,
        queue_sequence=0,
    )
    db.add(restaurant)
    await db.commit()
    await db.refresh(restaurant)

    logger.info("Created restaurant %s (%s)", restaurant.slug, restaurant.id)
    return restaurant


async def get_queue_limits(db: AsyncSession, restaurant_id: UUID) -> QueueLimits:
    """
    Effective limits for a restaurant.

    A restaurant that never saved its queue settings gets the configured
    defaults.
    """
    result = await db.execute(
        select(QueueSettings).where(QueueSettings.restaurant_id == restaurant_id)
    )
    row = result.scalar_one_or_none()

    if row is None:
        settings = get_settings()
        return QueueLimits(
            max_party_size=settings.default_max_party_size,
            queue_capacity=settings.default_queue_capacity,
            tolerance_minutes=settings.default_tolerance_minutes,
        )

    return QueueLimits(
        max_party_size=row.max_party_size,
        queue_capacity=row.queue_capacity,
        tolerance_minutes=row.tolerance_minutes,
    )


async def save_queue_settings(
    db: AsyncSession,
    restaurant_id: UUID,
    max_party_size: int,
    queue_capacity: int,
    tolerance_minutes: int,
) -> QueueLimits:
    """Create or update the settings row for a restaurant."""
    await get_restaurant(db, restaurant_id)

    if max_party_size < 1:
        raise ValidationFailed("max_party_size must be at least 1")
    if queue_capacity < 1:
        raise ValidationFailed("queue_capacity must be at least 1")
    if tolerance_minutes < 0:
        raise ValidationFailed("tolerance_minutes cannot be negative")

    result = await db.execute(
        select(QueueSettings).where(QueueSettings.restaurant_id == restaurant_id)
    )
    row = result.scalar_one_or_none()

    if row is None:
        row = QueueSettings(id=uuid.uuid4(), restaurant_id=restaurant_id)
        db.add(row)

    row.max_party_size = max_party_size
    row.queue_capacity = queue_capacity
    row.tolerance_minutes = tolerance_minutes

    await db.commit()
    return await get_queue_limits(db, restaurant_id)


async def create_customer(
    db: AsyncSession,
    restaurant_id: UUID,
    name: str,
    phone: Optional[str] = None,
    email: Optional[str] = None,
) -> Customer:
    await get_restaurant(db, restaurant_id)

    customer = Customer(
        id=uuid.uuid4(),
        restaurant_id=restaurant_id,
        name=name,
        phone=phone,
        email=email,
        total_visits=0,
    )
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    return customer


async def get_customer(
    db: AsyncSession,
    customer_id: UUID,
    restaurant_id: Optional[UUID] = None,
) -> Customer:
    query = select(Customer).where(Customer.id == customer_id)
    if restaurant_id is not None:
        query = query.where(Customer.restaurant_id == restaurant_id)

    result = await db.execute(query)
    customer = result.scalar_one_or_none()

    if not customer:
        raise CustomerNotFound(customer_id)

    return customer


async def find_customer_by_phone(
    db: AsyncSession,
    restaurant_id: UUID,
    phone: str,
) -> Optional[Customer]:
    """Oldest customer of the restaurant with this phone number, if any."""
    result = await db.execute(
        select(Customer)
        .where(Customer.restaurant_id == restaurant_id, Customer.phone == phone)
        .order_by(Customer.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()

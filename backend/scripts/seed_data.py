"""
Seed the database with a demo restaurant.

Creates the restaurant, its queue settings, a few CRM customers and a
week of seated tickets so wait-time estimates have history to work with.

Run with: python -m scripts.seed_data
"""

import asyncio
import random
import uuid
from datetime import timedelta

from sqlalchemy import func, select

from tablequeue.database import async_session_maker, init_db
from tablequeue.models import (
    Customer,
    QueueSettings,
    QueueTicket,
    Restaurant,
    TicketStatus,
)
from tablequeue.services.queue_service import count_waiting, enqueue
from tablequeue.services.size_groups import classify
from tablequeue.utils.timezone import format_local_time, local_date, local_midnight_utc, utc_now

DEMO_RESTAURANT = {
    "name": "Cantina Paulista",
    "slug": "cantina-paulista",
    "timezone": "America/Sao_Paulo",
}

DEMO_SETTINGS = {
    "max_party_size": 12,
    "queue_capacity": 40,
    "tolerance_minutes": 10,
}

DEMO_CUSTOMERS = [
    {"name": "Ana Souza", "phone": "+5511990000001", "email": "ana@example.com"},
    {"name": "Bruno Lima", "phone": "+5511990000002", "email": None},
    {"name": "Carla Mendes", "phone": "+5511990000003", "email": "carla@example.com"},
]

# Typical wait in minutes by party size: bigger tables turn over slower
TYPICAL_WAIT = {1: 12, 2: 12, 3: 18, 4: 18, 5: 25, 6: 25, 7: 35, 8: 35, 9: 45, 10: 45}
HISTORY_DAYS = 7
TICKETS_PER_DAY = 25


async def seed_restaurant(session) -> Restaurant:
    result = await session.execute(
        select(Restaurant).where(Restaurant.slug == DEMO_RESTAURANT["slug"])
    )
    restaurant = result.scalar_one_or_none()

    if restaurant:
        print(f"✓ {restaurant.name} exists")
        return restaurant

    restaurant = Restaurant(id=uuid.uuid4(), queue_sequence=0, **DEMO_RESTAURANT)
    session.add(restaurant)
    session.add(QueueSettings(id=uuid.uuid4(), restaurant_id=restaurant.id, **DEMO_SETTINGS))
    await session.flush()
    print(f"✓ Created restaurant: {restaurant.name}")
    return restaurant


async def seed_customers(session, restaurant: Restaurant) -> None:
    for customer_data in DEMO_CUSTOMERS:
        result = await session.execute(
            select(Customer).where(
                Customer.restaurant_id == restaurant.id,
                Customer.phone == customer_data["phone"],
            )
        )
        if result.scalar_one_or_none():
            print(f"  ✓ {customer_data['name']} exists")
            continue

        session.add(Customer(
            id=uuid.uuid4(),
            restaurant_id=restaurant.id,
            total_visits=0,
            **customer_data,
        ))
        print(f"  + Created: {customer_data['name']}")


async def seed_history(session, restaurant: Restaurant) -> None:
    """Seated tickets for the past week, dinner service from 19:00 local."""
    existing = await session.execute(
        select(func.count(QueueTicket.id)).where(QueueTicket.restaurant_id == restaurant.id)
    )
    if existing.scalar_one() > 0:
        print("  ✓ History exists")
        return

    rng = random.Random(42)
    today = local_date(utc_now(), restaurant.timezone)

    for days_ago in range(HISTORY_DAYS, 0, -1):
        service_start = local_midnight_utc(today - timedelta(days=days_ago), restaurant.timezone)
        service_start += timedelta(hours=19)

        for number in range(1, TICKETS_PER_DAY + 1):
            party_size = rng.choice([2, 2, 2, 3, 4, 4, 5, 6, 8, 11])
            created_at = service_start + timedelta(minutes=rng.randint(0, 180))
            waited = TYPICAL_WAIT.get(party_size, 60) + rng.randint(-5, 10)
            called_at = created_at + timedelta(minutes=waited - 2)

            session.add(QueueTicket(
                id=uuid.uuid4(),
                restaurant_id=restaurant.id,
                customer_name=f"Walk-in {number}",
                party_size=party_size,
                status=TicketStatus.SEATED.value,
                position_number=number,
                created_at=created_at,
                called_at=called_at,
                seated_at=created_at + timedelta(minutes=waited),
            ))

        print(
            f"  + {TICKETS_PER_DAY} seated tickets on "
            f"{format_local_time(service_start, restaurant.timezone, '%a %d/%m')}"
        )


async def seed_live_queue(session, restaurant: Restaurant) -> None:
    """A few parties waiting right now, one of them a known customer."""
    if await count_waiting(session, restaurant.id, utc_now()) > 0:
        print("  ✓ Live queue exists")
        return

    walk_ins = [
        ("Diego", None, 2),
        ("Ana Souza", "+5511990000001", 4),
        ("Elisa", None, 2),
        ("Fabio", None, 7),
    ]
    for name, phone, party_size in walk_ins:
        ticket = await enqueue(session, restaurant.id, name, phone, party_size)
        print(
            f"  + #{ticket.position_number} {name}, party of {party_size} "
            f"({classify(party_size).value}) at "
            f"{format_local_time(ticket.created_at, restaurant.timezone, '%H:%M')}"
        )


async def main():
    """Main entry point."""
    print("=" * 50)
    print("Seeding TableQueue Database")
    print("=" * 50)

    print("\nInitializing database...")
    await init_db()

    async with async_session_maker() as session:
        print("\nRestaurant:")
        restaurant = await seed_restaurant(session)

        print("\nCustomers:")
        await seed_customers(session, restaurant)

        print("\nHistory:")
        await seed_history(session, restaurant)
        await session.commit()

        print("\nLive queue:")
        await seed_live_queue(session, restaurant)

    print("\n✓ Seed data complete!")


if __name__ == "__main__":
    asyncio.run(main())

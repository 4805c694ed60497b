"""Pytest configuration and fixtures."""

import os

# Must be set before tablequeue modules build the engine and settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENABLE_VISIT_SYNC"] = "false"
os.environ["DEBUG"] = "false"
os.environ.pop("STAFF_API_KEY", None)

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import tablequeue.models  # noqa: F401  (registers tables on Base.metadata)
from tablequeue.database import Base, get_db
from tablequeue.main import app
from tablequeue.models import Customer, QueueSettings, Restaurant

# Fixed "now" for service-level tests: a Tuesday noon, UTC
T0 = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture
async def engine():
    """In-memory SQLite engine, one per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test database."""
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
async def restaurant(db: AsyncSession) -> Restaurant:
    """A restaurant on UTC so local days line up with UTC days."""
    restaurant = Restaurant(
        id=uuid.uuid4(),
        name="Cantina Test",
        slug="cantina-test",
        timezone="UTC",
        queue_sequence=0,
    )
    db.add(restaurant)
    await db.commit()
    await db.refresh(restaurant)
    return restaurant


@pytest.fixture
async def other_restaurant(db: AsyncSession) -> Restaurant:
    restaurant = Restaurant(
        id=uuid.uuid4(),
        name="Other Place",
        slug="other-place",
        timezone="UTC",
        queue_sequence=0,
    )
    db.add(restaurant)
    await db.commit()
    await db.refresh(restaurant)
    return restaurant


@pytest.fixture
async def queue_settings(db: AsyncSession, restaurant: Restaurant) -> QueueSettings:
    settings = QueueSettings(
        id=uuid.uuid4(),
        restaurant_id=restaurant.id,
        max_party_size=12,
        queue_capacity=5,
        tolerance_minutes=15,
    )
    db.add(settings)
    await db.commit()
    return settings


@pytest.fixture
async def customer(db: AsyncSession, restaurant: Restaurant) -> Customer:
    customer = Customer(
        id=uuid.uuid4(),
        restaurant_id=restaurant.id,
        name="Ana Souza",
        phone="+5511999990000",
        total_visits=3,
    )
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    return customer

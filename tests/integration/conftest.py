"""Integration test fixtures with a real database.

The ORM store runs against an in-process SQLite database so the
integration suite needs no server. API tests run the FastAPI app through
httpx with the persistence port swapped for an in-memory store.
"""

from collections.abc import AsyncGenerator
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fleet_ledger.api.app import create_app
from fleet_ledger.api.dependencies import get_clock, get_config, get_db_session, get_store
from fleet_ledger.config import ReconciliationConfig
from fleet_ledger.models import Base, Lease, Vehicle
from fleet_ledger.persistence import InMemoryLedgerStore, SqlAlchemyLedgerStore
from tests.conftest import TODAY

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """Fresh schema per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for integration tests."""
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def sql_store(db_session: AsyncSession) -> SqlAlchemyLedgerStore:
    return SqlAlchemyLedgerStore(db_session)


async def seed_vehicle(session: AsyncSession, plate: str) -> Vehicle:
    """Insert a vehicle row."""
    vehicle = Vehicle(license_plate=plate)
    session.add(vehicle)
    await session.commit()
    return vehicle


async def seed_lease(
    session: AsyncSession,
    vehicle_id: UUID,
    start_date: date,
    end_date: date | None = None,
    *,
    status: str = "active",
    created_at: datetime | None = None,
    agreement_number: str | None = None,
) -> Lease:
    """Insert a lease row."""
    lease = Lease(
        vehicle_id=vehicle_id,
        customer_id=uuid4(),
        start_date=start_date,
        end_date=end_date,
        status=status,
        rent_amount=Decimal("1000"),
        daily_late_fee=Decimal("120"),
        agreement_number=agreement_number,
    )
    if created_at is not None:
        lease.created_at = created_at
    session.add(lease)
    await session.commit()
    return lease


@pytest.fixture
def api_store() -> InMemoryLedgerStore:
    """Store behind the API under test."""
    return InMemoryLedgerStore()


@pytest_asyncio.fixture
async def client(
    api_store: InMemoryLedgerStore, db_session: AsyncSession
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_store] = lambda: api_store
    app.dependency_overrides[get_clock] = lambda: (lambda: TODAY)
    app.dependency_overrides[get_config] = lambda: ReconciliationConfig(validation_delay_seconds=0)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

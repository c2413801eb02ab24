"""
Test Configuration — Fixtures for async DB, test client, and mock data.

Each test gets its own in-memory SQLite database, so app code is free to
commit without leaking state between tests.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from api.deps import get_current_user, get_db
from api.main import app
from db.session import Base

# Use in-memory SQLite for tests (no PostgreSQL features).
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SUPPLIER_ID = "00000000-0000-0000-0000-000000000001"
BUYER_ID = "00000000-0000-0000-0000-000000000002"
OTHER_BUYER_ID = "00000000-0000-0000-0000-000000000003"
OTHER_SUPPLIER_ID = "00000000-0000-0000-0000-000000000004"


@pytest.fixture
async def test_engine():
    """Fresh database with all tables for a single test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    session = AsyncSession(bind=test_engine, expire_on_commit=False)
    yield session
    await session.close()


@pytest.fixture
def mock_user():
    """Mock authenticated user. Tests switch organizations by mutating it."""
    return {
        "sub": "test-user-id",
        "email": "supplier@groupbuy.test",
        "organization_id": SUPPLIER_ID,
    }


@pytest.fixture
def act_as(mock_user):
    def _switch(organization_id: str) -> None:
        mock_user["organization_id"] = organization_id

    return _switch


@pytest.fixture
async def client(test_db, mock_user):
    """Create an async test client with dependency overrides."""

    async def override_get_db():
        yield test_db

    def override_get_current_user():
        return mock_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def seeded_db(test_db):
    """Seed organizations and one draft campaign with three brackets."""
    from db.models import Campaign, DiscountBracket, Organization

    test_db.add_all(
        [
            Organization(organization_id=uuid.UUID(SUPPLIER_ID), name="Acme Supply", org_type="supplier"),
            Organization(organization_id=uuid.UUID(OTHER_SUPPLIER_ID), name="Rival Supply", org_type="supplier"),
            Organization(organization_id=uuid.UUID(BUYER_ID), name="Northside Co-op", org_type="buyer"),
            Organization(organization_id=uuid.UUID(OTHER_BUYER_ID), name="Harbor Clinics", org_type="buyer"),
        ]
    )
    await test_db.flush()

    campaign = Campaign(
        supplier_id=uuid.UUID(SUPPLIER_ID),
        title="Nitrile Gloves, case of 1000",
        description="Powder-free, size M",
        product_details={"sku": "GLV-M-1000"},
        target_quantity=200,
        start_date=date.today() - timedelta(days=1),
        end_date=date.today() + timedelta(days=10),
        status="draft",
    )
    test_db.add(campaign)
    await test_db.flush()

    brackets = [
        DiscountBracket(
            campaign_id=campaign.campaign_id,
            min_quantity=10,
            max_quantity=49,
            unit_price=Decimal("25.00"),
            bracket_order=1,
        ),
        DiscountBracket(
            campaign_id=campaign.campaign_id,
            min_quantity=50,
            max_quantity=99,
            unit_price=Decimal("22.00"),
            bracket_order=2,
        ),
        DiscountBracket(
            campaign_id=campaign.campaign_id,
            min_quantity=100,
            max_quantity=None,
            unit_price=Decimal("19.00"),
            bracket_order=3,
        ),
    ]
    test_db.add_all(brackets)
    await test_db.commit()

    return {
        "supplier_id": uuid.UUID(SUPPLIER_ID),
        "buyer_id": uuid.UUID(BUYER_ID),
        "other_buyer_id": uuid.UUID(OTHER_BUYER_ID),
        "campaign": campaign,
        "brackets": brackets,
    }

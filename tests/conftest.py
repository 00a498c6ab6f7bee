"""Shared test infrastructure for the Warehub test suite.

Provides:
- engine / session_factory / db_session: file-backed async SQLite with all tables
  created (a file, not :memory:, so the notifier's own sessions see committed rows)
- clock: controllable UTC clock injected into services
- recording_sink / notifier: notifier writing to the DB and capturing every push
- make_user / admin / trader / other_trader: user factories
  (factories seed through their own sessions, so a rollback in db_session never
  expires the objects they return)
- catalog: two warehouses with Dry/Cold storage spaces and two services
- make_inquiry: factory for inquiries in any status
- offer_repo / inquiry_service: services wired to the fixtures above
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from warehub.infra.database import Base

import warehub.domain.models  # noqa: F401

from warehub.domain.enums import ActorRole, BookingStatus, UserRole
from warehub.domain.models import (
    Inquiry,
    InquiryService as InquiryServiceRow,
    InquirySpaceRequest,
    InquiryWarehouse,
    SpaceType,
    User,
    Warehouse,
    WarehouseService,
    WarehouseSpace,
)
from warehub.services.access_guard import AccessGuard, Actor, DatabaseAuthorizationOracle
from warehub.services.inquiry_service import InquiryService
from warehub.services.notifier import DatabaseNotificationSink, Notifier
from warehub.services.offer_repository import OfferRepository


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite file per test with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'warehub_test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with engine.connect() as conn:
        await conn.execute(text("PRAGMA journal_mode=WAL"))

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 12, 20, 9, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class RecordingSink:
    """Notification sink capturing (recipient_id, category, title, inquiry_id) tuples."""

    def __init__(self):
        self.pushed = []

    async def push(self, recipient_id, category, title, body, inquiry_id):
        self.pushed.append((recipient_id, category.value, title, inquiry_id))


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def notifier(session_factory, recording_sink):
    return Notifier(session_factory, [DatabaseNotificationSink(session_factory), recording_sink])


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(session_factory):
    """Factory that creates a committed User row.

    Usage:
        trader = await make_user(role="trader")
    """
    async def _factory(
        role: str = UserRole.TRADER.value,
        email: str | None = None,
        name: str = "Test User",
        is_active: bool = True,
    ) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=email or f"{uuid.uuid4().hex[:8]}@test.com",
            password_hash="not-a-real-hash",
            name=name,
            role=role,
            is_active=is_active,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _factory


@pytest.fixture
async def admin(make_user):
    return await make_user(role=UserRole.ADMINISTRATOR.value, name="Ada Admin")


@pytest.fixture
async def trader(make_user):
    return await make_user(role=UserRole.TRADER.value, name="Tom Trader")


@pytest.fixture
async def other_trader(make_user):
    return await make_user(role=UserRole.TRADER.value, name="Olga Other")


@pytest.fixture
def admin_actor(admin):
    return Actor(user_id=admin.id, role=ActorRole.ADMINISTRATOR)


@pytest.fixture
def trader_actor(trader):
    return Actor(user_id=trader.id, role=ActorRole.TRADER)


@pytest.fixture
def other_trader_actor(other_trader):
    return Actor(user_id=other_trader.id, role=ActorRole.TRADER)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@pytest.fixture
async def catalog(session_factory):
    """Two warehouses; the main one has Dry Storage @ 300 and Cold Storage @ 800 cents/m2/day."""
    main = Warehouse(id=str(uuid.uuid4()), name="Harbour DC", city="Rotterdam")
    remote = Warehouse(id=str(uuid.uuid4()), name="Inland Hub", city="Venlo")
    dry = SpaceType(id=str(uuid.uuid4()), name="Dry Storage")
    cold = SpaceType(id=str(uuid.uuid4()), name="Cold Storage")

    dry_space = WarehouseSpace(
        id=str(uuid.uuid4()), warehouse_id=main.id, space_type_id=dry.id,
        size_m2=Decimal("500"), price_per_m2_cents=300,
    )
    cold_space = WarehouseSpace(
        id=str(uuid.uuid4()), warehouse_id=main.id, space_type_id=cold.id,
        size_m2=Decimal("200"), price_per_m2_cents=800,
    )
    remote_dry_space = WarehouseSpace(
        id=str(uuid.uuid4()), warehouse_id=remote.id, space_type_id=dry.id,
        size_m2=Decimal("1000"), price_per_m2_cents=250,
    )
    handling = WarehouseService(
        id=str(uuid.uuid4()), warehouse_id=main.id, name="Handling",
        hourly_rate_cents=4500,
    )
    labelling = WarehouseService(
        id=str(uuid.uuid4()), warehouse_id=main.id, name="Labelling",
        unit_rate_cents=15, unit_type="label",
    )
    async with session_factory() as session:
        session.add_all([main, remote, dry, cold])
        await session.flush()
        session.add_all([dry_space, cold_space, remote_dry_space, handling, labelling])
        await session.commit()

    return SimpleNamespace(
        warehouse=main,
        remote_warehouse=remote,
        dry=dry,
        cold=cold,
        dry_space=dry_space,
        cold_space=cold_space,
        remote_dry_space=remote_dry_space,
        handling=handling,
        labelling=labelling,
    )


# ---------------------------------------------------------------------------
# Inquiry factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_inquiry(session_factory, trader, catalog):
    """Factory that creates a committed Inquiry with its request rows.

    Defaults to 50 m2 of Dry Storage from 2025-01-01 to 2025-01-05, under review.

    Usage:
        inquiry = await make_inquiry(status="submitted")
    """
    async def _factory(
        status: str = BookingStatus.UNDER_REVIEW.value,
        trader_id: str | None = None,
        requests: list[tuple[str, str]] | None = None,
        start: datetime = datetime(2025, 1, 1, tzinfo=timezone.utc),
        end: datetime = datetime(2025, 1, 5, tzinfo=timezone.utc),
        warehouse_ids: list[str] | None = None,
        service_ids: list[str] | None = None,
        estimated_cost_cents: int = 75000,
    ) -> Inquiry:
        inquiry = Inquiry(
            id=str(uuid.uuid4()),
            trader_id=trader_id or trader.id,
            start_date=start,
            end_date=end,
            status=status,
            estimated_cost_cents=estimated_cost_cents,
        )
        rows = [
            InquirySpaceRequest(
                inquiry_id=inquiry.id,
                space_type_id=space_type_id,
                size_m2=Decimal(size),
                position=position,
            )
            for position, (space_type_id, size) in enumerate(requests or [(catalog.dry.id, "50")])
        ]
        rows += [InquiryWarehouse(inquiry_id=inquiry.id, warehouse_id=w) for w in warehouse_ids or []]
        rows += [InquiryServiceRow(inquiry_id=inquiry.id, service_id=s) for s in service_ids or []]
        async with session_factory() as session:
            session.add(inquiry)
            await session.flush()
            session.add_all(rows)
            await session.commit()
        return inquiry

    return _factory


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest.fixture
def guard(db_session):
    return AccessGuard(DatabaseAuthorizationOracle(db_session))


@pytest.fixture
def offer_repo(db_session, guard, notifier, clock):
    return OfferRepository(db_session, guard, notifier, clock=clock)


@pytest.fixture
def inquiry_service(db_session, guard, notifier, clock):
    return InquiryService(db_session, guard, notifier, clock=clock)

"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.core.config import settings
from backend.app.core.context import AppContext
from backend.app.core.exceptions import DownstreamError
from backend.app.core.jwt import create_identity_token
from backend.app.db.session import Base, create_session_factory
from backend.app.domain.lifecycle.coordinator import LifecycleCoordinator
from backend.app.models.enums import UserRole, AgentAvailability
from backend.app.models.user import User
from backend.app.schemas.parcel import ParcelBooking
from backend.app.services.geocoding import Coordinate
from backend.app.services.live_updates import BroadcastHub
from backend.app.services.notification_service import NotificationDispatcher

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = create_session_factory(engine)

GULSHAN = "House 12, Road 5, Gulshan"
MIRPUR = "Mirpur 10"
UNKNOWN = "Nowhere Lane 999"


class FakeGeocoder:
    """Resolves a fixed set of Dhaka addresses; everything else misses."""

    KNOWN = {
        GULSHAN.lower(): Coordinate(lat=23.7925, lng=90.4078),
        MIRPUR.lower(): Coordinate(lat=23.8069, lng=90.3687),
    }

    def __init__(self):
        self.queries = []

    async def resolve(self, address):
        self.queries.append(address)
        return self.KNOWN.get(address.strip().lower())


class RecordingMailer:
    """Collects outgoing mail instead of sending it; can be told to fail."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to, subject, html, text):
        if self.fail:
            raise DownstreamError("mail", "simulated outage")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return True


class RecordingSocket:
    """Stands in for a connected WebSocket viewer."""

    def __init__(self, broken=False):
        self.messages = []
        self.accepted = False
        self.broken = broken

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.broken:
            raise RuntimeError("socket closed")
        self.messages.append(data)

    async def close(self):
        pass


def auth_headers(email: str) -> dict:
    """Bearer header for a token whose subject is `email`."""
    token = create_identity_token(email)
    return {"Authorization": f"Bearer {token}"}


def booking_payload(**overrides) -> dict:
    payload = {
        "sender_name": "Rahim Uddin",
        "sender_phone": "01700000000",
        "receiver_name": "Karim Ahmed",
        "receiver_phone": "01800000000",
        "pickup_address": GULSHAN,
        "delivery_address": MIRPUR,
        "parcel_size": "Small",
        "payment_type": "CashOnDelivery",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def context():
    """Fresh application context and schema for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    hub = BroadcastHub()
    mailer = RecordingMailer()
    ctx = AppContext(
        settings=settings,
        engine=engine,
        session_factory=TestingSessionLocal,
        geocoder=FakeGeocoder(),
        mailer=mailer,
        hub=hub,
        notifier=NotificationDispatcher(mailer, hub),
    )
    app.state.context = ctx

    yield ctx

    await ctx.notifier.drain()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(context):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(context):
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def coordinator(db_session, context):
    return LifecycleCoordinator(db_session, context.geocoder, context.notifier)


async def _create_user(session, email, role, availability=None, name=None):
    user = User(email=email, name=name, role=role, availability=availability)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
async def customer(db_session):
    return await _create_user(db_session, "customer@test.com", UserRole.CUSTOMER, name="Rahim Uddin")


@pytest.fixture
async def other_customer(db_session):
    return await _create_user(db_session, "other@test.com", UserRole.CUSTOMER)


@pytest.fixture
async def agent(db_session):
    return await _create_user(
        db_session, "agent@test.com", UserRole.DELIVERY_AGENT, AgentAvailability.AVAILABLE, name="Agent One"
    )


@pytest.fixture
async def second_agent(db_session):
    return await _create_user(
        db_session, "agent2@test.com", UserRole.DELIVERY_AGENT, AgentAvailability.AVAILABLE, name="Agent Two"
    )


@pytest.fixture
async def admin(db_session):
    return await _create_user(db_session, "admin@test.com", UserRole.ADMIN)


@pytest.fixture
async def pending_parcel(coordinator, customer, context):
    """A freshly booked parcel owned by `customer`; booking side effects are flushed."""
    parcel = await coordinator.book(customer.email, ParcelBooking(**booking_payload()))
    await context.notifier.drain()
    context.mailer.sent.clear()
    return parcel


@pytest.fixture
def viewer():
    return RecordingSocket()


@pytest.fixture
def broken_viewer():
    return RecordingSocket(broken=True)


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def booking():
    return booking_payload

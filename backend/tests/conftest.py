"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test gets its own transaction that rolls back after the test.
- Commits issued by the application code do not end the outer transaction.
- Defaults to in-memory SQLite; set TEST_DATABASE_URL to run against PostgreSQL.
"""

import hashlib
import hmac
import json
import os
import time
import uuid
from collections.abc import AsyncGenerator
from datetime import date, timedelta
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db, get_notification_sink, get_payment_gateway
from app.billing.stripe_client import CheckoutSession, StripeGateway
from app.config import settings
from app.database import Base
from app.main import app
from app.models.profile import ROLE_ADMIN, ROLE_CONTRACTOR, ROLE_LANDLORD, Profile
from app.models.property import Property
from app.notifications.sink import NotificationSink

TEST_WEBHOOK_SECRET = "whsec_test_secret"
TEST_GHL_URL = "https://hooks.example.test/ghl"

_test_db_url = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


def _make_engine():
    if _test_db_url.startswith("sqlite"):
        # One shared connection so the in-memory database survives across sessions
        return create_async_engine(
            _test_db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(_test_db_url, echo=False, pool_pre_ping=True)


# ---------------------------------------------------------------------------
# Session-scoped: create / drop all tables once per test session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine():
    """Create a session-scoped engine tied to the session event loop."""
    engine = _make_engine()
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def setup_test_db(test_engine):
    """Create all tables at the start of the session and drop them at the end."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Per-test: transactional rollback for isolation
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(test_engine, setup_test_db) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


# ---------------------------------------------------------------------------
# Collaborator doubles: notification sink and Stripe gateway
# ---------------------------------------------------------------------------


class RecordingTransport:
    """httpx handler that records every JSON body posted to the sink."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        return httpx.Response(self.status_code, json={"ok": True})

    def events(self, event_type: str | None = None) -> list[dict]:
        if event_type is None:
            return self.requests
        return [r for r in self.requests if r.get("event_type") == event_type]


class FakeStripeGateway(StripeGateway):
    """Real webhook verification, canned checkout sessions."""

    def __init__(self, webhook_secret: str = TEST_WEBHOOK_SECRET) -> None:
        super().__init__(secret_key="", webhook_secret=webhook_secret)
        self.sessions: list[dict] = []

    @property
    def configured(self) -> bool:
        return True

    async def create_checkout_session(self, booking_id, amount, success_url, cancel_url):
        session = CheckoutSession(
            id=f"cs_test_{uuid.uuid4().hex}",
            url="https://checkout.stripe.test/pay",
        )
        self.sessions.append(
            {
                "id": session.id,
                "booking_id": booking_id,
                "amount": amount,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return session


@pytest.fixture
def sink_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest_asyncio.fixture
async def notification_sink(sink_transport: RecordingTransport) -> AsyncGenerator[NotificationSink, None]:
    """A notification sink whose HTTP traffic is captured by ``sink_transport``."""
    sink = NotificationSink(
        TEST_GHL_URL,
        client=httpx.AsyncClient(transport=httpx.MockTransport(sink_transport)),
    )
    yield sink
    await sink.aclose()


@pytest.fixture
def stripe_gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    notification_sink: NotificationSink,
    stripe_gateway: FakeStripeGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test DB session and doubles."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_sink] = lambda: notification_sink
    app.dependency_overrides[get_payment_gateway] = lambda: stripe_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Identity helpers
# ---------------------------------------------------------------------------


def make_token(
    subject: uuid.UUID | str,
    *,
    expires_in: int = 3600,
    audience: str | None = None,
    issuer: str | None = None,
    secret: str | None = None,
) -> str:
    """Mint an access token the way the identity provider does."""
    now = int(time.time())
    claims = {
        "sub": str(subject),
        "aud": audience or settings.identity_jwt_audience,
        "iss": issuer or settings.identity_issuer,
        "iat": now,
        "exp": now + expires_in,
        "role": "authenticated",
    }
    return jwt.encode(
        claims,
        secret or settings.identity_jwt_secret,
        algorithm=settings.identity_jwt_algorithm,
    )


def bearer(profile: Profile) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(profile.id)}"}


# ---------------------------------------------------------------------------
# Stripe webhook helpers
# ---------------------------------------------------------------------------


def checkout_event(
    event_type: str,
    session_id: str,
    booking_id: uuid.UUID | str | None,
    amount_total: int | None = 20000,
    payment_status: str = "paid",
) -> str:
    """Serialize a Stripe checkout.session event body."""
    metadata = {"booking_id": str(booking_id)} if booking_id is not None else {}
    return json.dumps(
        {
            "id": f"evt_test_{uuid.uuid4().hex[:12]}",
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "amount_total": amount_total,
                    "payment_status": payment_status,
                    "metadata": metadata,
                }
            },
        }
    )


def stripe_signature(payload: str, secret: str = TEST_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a ``Stripe-Signature`` header the way Stripe signs deliveries."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


async def create_profile(db_session: AsyncSession, role: str, full_name: str | None = None) -> Profile:
    """Insert a profile row directly, as the identity provider would."""
    unique = uuid.uuid4().hex[:8]
    profile = Profile(
        id=uuid.uuid4(),
        email=f"{role}-{unique}@test.com",
        full_name=full_name or f"Test {role.title()}",
        role=role,
    )
    db_session.add(profile)
    await db_session.flush()
    await db_session.refresh(profile)
    return profile


async def create_property(
    db_session: AsyncSession,
    owner: Profile,
    price: Decimal = Decimal("100.00"),
    title: str = "Harbour View Apartment",
) -> Property:
    prop = Property(
        owner_id=owner.id,
        title=title,
        description="Two bedrooms close to the docks.",
        address="1 Quay Street, Auckland",
        latitude=-36.8441,
        longitude=174.7680,
        price=price,
    )
    db_session.add(prop)
    await db_session.flush()
    await db_session.refresh(prop)
    return prop


# ---------------------------------------------------------------------------
# Convenience fixtures: profiles, auth headers, property
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Profile:
    return await create_profile(db_session, ROLE_ADMIN, "Ada Admin")


@pytest_asyncio.fixture
async def landlord(db_session: AsyncSession) -> Profile:
    return await create_profile(db_session, ROLE_LANDLORD, "Lee Landlord")


@pytest_asyncio.fixture
async def contractor(db_session: AsyncSession) -> Profile:
    return await create_profile(db_session, ROLE_CONTRACTOR, "Cam Contractor")


@pytest.fixture
def admin_headers(admin: Profile) -> dict[str, str]:
    return bearer(admin)


@pytest.fixture
def landlord_headers(landlord: Profile) -> dict[str, str]:
    return bearer(landlord)


@pytest.fixture
def contractor_headers(contractor: Profile) -> dict[str, str]:
    return bearer(contractor)


@pytest_asyncio.fixture
async def test_property(db_session: AsyncSession, landlord: Profile) -> Property:
    """A property priced at 100.00 per day, owned by ``landlord``."""
    return await create_property(db_session, landlord)


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------


def future_dates(offset_start: int = 30, days: int = 2) -> tuple[str, str]:
    """Return a (start_date, end_date) pair safely in the future as ISO strings."""
    start = date.today() + timedelta(days=offset_start)
    end = start + timedelta(days=days)
    return start.isoformat(), end.isoformat()


async def api_create_booking(client: AsyncClient, headers: dict, property_id, offset_start: int = 30) -> dict:
    """Create a booking through the API and return the ``booking`` object."""
    start, end = future_dates(offset_start)
    response = await client.post(
        "/api/v1/bookings/create",
        json={"property_id": str(property_id), "start_date": start, "end_date": end},
        headers=headers,
    )
    assert response.status_code == 201, f"Failed to create booking: {response.text}"
    return response.json()["booking"]

"""Tests for the payment bridge and Stripe gateway — amounts, checkout and event verification."""

import json
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.gate import Identity
from app.billing.payments import PaymentBridge, billable_days, booking_amount
from app.billing.stripe_client import PaymentEvent, StripeGateway, to_cents
from app.exceptions import (
    Forbidden,
    InvalidEvent,
    InvalidTransition,
    NotFound,
    SignatureInvalid,
    UpstreamUnavailable,
)
from app.models.invoice import INVOICE_UNPAID, Invoice
from app.models.profile import ROLE_CONTRACTOR, Profile
from app.services import booking_store
from app.services.booking_lifecycle import BookingLifecycle
from conftest import (
    TEST_WEBHOOK_SECRET,
    checkout_event,
    create_profile,
    create_property,
    stripe_signature,
)

pytestmark = pytest.mark.asyncio


def _identity(profile: Profile) -> Identity:
    return Identity(id=profile.id, role=profile.role, full_name=profile.full_name)


async def _count_invoices(db_session: AsyncSession) -> int:
    result = await db_session.execute(select(func.count()).select_from(Invoice))
    return result.scalar_one()


@pytest.fixture
def lifecycle(db_session, notification_sink) -> BookingLifecycle:
    return BookingLifecycle(db_session, notification_sink)


@pytest.fixture
def bridge(db_session, stripe_gateway, lifecycle) -> PaymentBridge:
    return PaymentBridge(db_session, stripe_gateway, lifecycle, frontend_url="https://app.example.com/")


async def _booking(lifecycle, contractor, admin, prop, start, end, confirm=True):
    booking = await lifecycle.create(_identity(contractor), prop.id, start, end)
    if confirm:
        booking = await lifecycle.confirm(_identity(admin), booking.id, "confirmed")
    return booking


# ---------------------------------------------------------------------------
# Amount calculation
# ---------------------------------------------------------------------------


class TestAmounts:
    async def test_billable_days(self):
        assert billable_days(date(2024, 1, 1), date(2024, 1, 2)) == 1
        assert billable_days(date(2024, 1, 1), date(2024, 1, 3)) == 2
        assert billable_days(date(2024, 1, 1), date(2024, 1, 31)) == 30

    async def test_booking_amount(self):
        assert booking_amount(Decimal("100.00"), date(2024, 1, 1), date(2024, 1, 3)) == Decimal("200.00")
        assert booking_amount(Decimal("50"), date(2024, 1, 1), date(2024, 1, 4)) == Decimal("150")

    async def test_to_cents(self):
        assert to_cents(Decimal("200.00")) == 20000
        assert to_cents(Decimal("19.995")) == 2000
        assert to_cents(Decimal("0.01")) == 1

    async def test_payment_event_amount(self):
        event = PaymentEvent(
            id="evt_1",
            type="checkout.session.completed",
            session_id="cs_1",
            booking_id=None,
            amount_total=15050,
            payment_status="paid",
        )
        assert event.amount_paid == Decimal("150.50")


# ---------------------------------------------------------------------------
# initiate_checkout
# ---------------------------------------------------------------------------


class TestInitiateCheckout:
    async def test_creates_unpaid_invoice(
        self, bridge, lifecycle, stripe_gateway, contractor, admin, test_property
    ):
        booking = await _booking(
            lifecycle, contractor, admin, test_property, date(2024, 1, 1), date(2024, 1, 3)
        )

        session, invoice = await bridge.initiate_checkout(booking.id, requester=_identity(contractor))

        assert session.id.startswith("cs_test_")
        assert invoice.stripe_session_id == session.id
        assert invoice.stripe_payment_url == session.url
        assert invoice.amount == Decimal("200.00")
        assert invoice.status == INVOICE_UNPAID
        assert invoice.booking_id == booking.id

        sent = stripe_gateway.sessions[0]
        assert sent["booking_id"] == str(booking.id)
        assert sent["amount"] == Decimal("200.00")
        assert sent["success_url"] == "https://app.example.com/contractor?payment=success"
        assert sent["cancel_url"] == "https://app.example.com/contractor?payment=cancelled"

    async def test_three_days_at_fifty(
        self, bridge, lifecycle, db_session, contractor, admin, landlord
    ):
        prop = await create_property(db_session, landlord, price=Decimal("50.00"))
        booking = await _booking(lifecycle, contractor, admin, prop, date(2024, 1, 1), date(2024, 1, 4))

        _, invoice = await bridge.initiate_checkout(booking.id)
        assert invoice.amount == Decimal("150.00")

    async def test_each_attempt_gets_its_own_invoice(
        self, bridge, lifecycle, db_session, contractor, admin, test_property
    ):
        booking = await _booking(
            lifecycle, contractor, admin, test_property, date(2030, 1, 1), date(2030, 1, 3)
        )
        await bridge.initiate_checkout(booking.id)
        await bridge.initiate_checkout(booking.id)

        reloaded = await booking_store.get_booking(db_session, booking.id)
        assert len(reloaded.invoices) == 2
        assert len({inv.stripe_session_id for inv in reloaded.invoices}) == 2

    async def test_pending_booking_rejected(
        self, bridge, lifecycle, db_session, stripe_gateway, contractor, admin, test_property
    ):
        booking = await _booking(
            lifecycle, contractor, admin, test_property, date(2030, 1, 1), date(2030, 1, 3), confirm=False
        )
        before = await _count_invoices(db_session)

        with pytest.raises(InvalidTransition):
            await bridge.initiate_checkout(booking.id)
        assert await _count_invoices(db_session) == before
        assert stripe_gateway.sessions == []

    async def test_cancelled_booking_rejected(
        self, bridge, lifecycle, contractor, admin, test_property
    ):
        booking = await _booking(
            lifecycle, contractor, admin, test_property, date(2030, 1, 1), date(2030, 1, 3), confirm=False
        )
        await lifecycle.confirm(_identity(admin), booking.id, "cancelled")
        with pytest.raises(InvalidTransition):
            await bridge.initiate_checkout(booking.id)

    async def test_unknown_booking(self, bridge):
        with pytest.raises(NotFound):
            await bridge.initiate_checkout(uuid.uuid4())

    async def test_other_contractor_forbidden(
        self, bridge, lifecycle, db_session, contractor, admin, test_property
    ):
        booking = await _booking(
            lifecycle, contractor, admin, test_property, date(2030, 1, 1), date(2030, 1, 3)
        )
        other = await create_profile(db_session, ROLE_CONTRACTOR, "Other Contractor")
        with pytest.raises(Forbidden):
            await bridge.initiate_checkout(booking.id, requester=_identity(other))

    async def test_admin_may_pay(self, bridge, lifecycle, contractor, admin, test_property):
        booking = await _booking(
            lifecycle, contractor, admin, test_property, date(2030, 1, 1), date(2030, 1, 3)
        )
        _, invoice = await bridge.initiate_checkout(booking.id, requester=_identity(admin))
        assert invoice.booking_id == booking.id

    async def test_unconfigured_gateway(
        self, db_session, lifecycle, contractor, admin, test_property
    ):
        booking = await _booking(
            lifecycle, contractor, admin, test_property, date(2030, 1, 1), date(2030, 1, 3)
        )
        before = await _count_invoices(db_session)
        gateway = StripeGateway(secret_key="", webhook_secret="")
        bridge = PaymentBridge(db_session, gateway, lifecycle, frontend_url="http://localhost:3000")

        assert gateway.configured is False
        with pytest.raises(UpstreamUnavailable):
            await bridge.initiate_checkout(booking.id)
        assert await _count_invoices(db_session) == before


# ---------------------------------------------------------------------------
# Webhook verification
# ---------------------------------------------------------------------------


class TestVerifyEvent:
    async def test_valid_signature(self):
        gateway = StripeGateway(secret_key="", webhook_secret=TEST_WEBHOOK_SECRET)
        booking_id = uuid.uuid4()
        payload = checkout_event("checkout.session.completed", "cs_test_1", booking_id)

        event = gateway.verify_event(payload.encode(), stripe_signature(payload))

        assert event.type == "checkout.session.completed"
        assert event.session_id == "cs_test_1"
        assert event.booking_id == str(booking_id)
        assert event.amount_paid == Decimal("200")
        assert event.payment_status == "paid"

    async def test_signature_with_wrong_secret(self):
        gateway = StripeGateway(secret_key="", webhook_secret=TEST_WEBHOOK_SECRET)
        payload = checkout_event("checkout.session.completed", "cs_test_1", uuid.uuid4())
        with pytest.raises(SignatureInvalid):
            gateway.verify_event(payload.encode(), stripe_signature(payload, secret="whsec_other"))

    async def test_tampered_body(self):
        gateway = StripeGateway(secret_key="", webhook_secret=TEST_WEBHOOK_SECRET)
        payload = checkout_event("checkout.session.completed", "cs_test_1", uuid.uuid4())
        header = stripe_signature(payload)
        tampered = payload.replace("cs_test_1", "cs_test_2")
        with pytest.raises(SignatureInvalid):
            gateway.verify_event(tampered.encode(), header)

    async def test_stale_timestamp(self):
        gateway = StripeGateway(secret_key="", webhook_secret=TEST_WEBHOOK_SECRET)
        payload = checkout_event("checkout.session.completed", "cs_test_1", uuid.uuid4())
        with pytest.raises(SignatureInvalid):
            gateway.verify_event(payload.encode(), stripe_signature(payload, timestamp=1_000_000_000))

    async def test_missing_secret_fails_closed(self):
        gateway = StripeGateway(secret_key="", webhook_secret="")
        payload = checkout_event("checkout.session.completed", "cs_test_1", uuid.uuid4())
        with pytest.raises(SignatureInvalid):
            gateway.verify_event(payload.encode(), stripe_signature(payload))

    async def test_signed_garbage(self):
        gateway = StripeGateway(secret_key="", webhook_secret=TEST_WEBHOOK_SECRET)
        payload = "not json"
        with pytest.raises(InvalidEvent):
            gateway.verify_event(payload.encode(), stripe_signature(payload))

    @pytest.mark.parametrize("event_type", [42, None, ["checkout.session.completed"]])
    async def test_signed_event_with_non_string_type(self, event_type):
        gateway = StripeGateway(secret_key="", webhook_secret=TEST_WEBHOOK_SECRET)
        payload = json.dumps({"id": "evt_1", "type": event_type, "data": {"object": {"id": "cs_test_1"}}})
        with pytest.raises(InvalidEvent):
            gateway.verify_event(payload.encode(), stripe_signature(payload))


class TestHandleInboundEvent:
    async def test_missing_signature_header(self, bridge):
        with pytest.raises(SignatureInvalid):
            await bridge.handle_inbound_event(b"{}", None)

    async def test_unknown_event_ignored(self, bridge):
        payload = checkout_event("customer.created", "cus_1", None)
        assert await bridge.handle_inbound_event(payload.encode(), stripe_signature(payload)) == "ignored"

    async def test_completed_without_booking_id(self, bridge):
        payload = checkout_event("checkout.session.completed", "cs_test_1", None)
        with pytest.raises(InvalidEvent):
            await bridge.handle_inbound_event(payload.encode(), stripe_signature(payload))

    async def test_completed_with_malformed_booking_id(self, bridge):
        payload = checkout_event("checkout.session.completed", "cs_test_1", "not-a-uuid")
        with pytest.raises(InvalidEvent):
            await bridge.handle_inbound_event(payload.encode(), stripe_signature(payload))

    async def test_completed_is_processed(
        self, bridge, lifecycle, db_session, contractor, admin, test_property
    ):
        booking = await _booking(
            lifecycle, contractor, admin, test_property, date(2030, 1, 1), date(2030, 1, 3)
        )
        session, _ = await bridge.initiate_checkout(booking.id)
        payload = checkout_event("checkout.session.completed", session.id, booking.id)

        outcome = await bridge.handle_inbound_event(payload.encode(), stripe_signature(payload))

        assert outcome == "processed"
        reloaded = await booking_store.get_booking(db_session, booking.id)
        assert reloaded.status == "paid"

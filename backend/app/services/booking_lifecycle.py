"""Booking lifecycle — status transitions, derived invoice status and notifications.

Status graph::

    pending ──► confirmed ──► paid
       │
       └──────► cancelled

``confirmed`` and ``cancelled`` are admin decisions; ``paid`` is only reached
through a verified Stripe payment (``mark_paid``). ``paid`` and ``cancelled``
are terminal. A booking is ``paid`` exactly when at least one of its invoices
is ``paid``; both rows are written in the same transaction.

Notifications are sent after the transaction commits. Inside a request they
are scheduled on FastAPI ``BackgroundTasks`` so they never delay or fail the
response.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.gate import Identity
from app.exceptions import Forbidden, InvalidEvent, InvalidRange, InvalidTransition, NotFound
from app.models.booking import (
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PAID,
    STATUS_PENDING,
    Booking,
)
from app.models.invoice import INVOICE_PAID
from app.notifications.sink import NotificationSink
from app.services import booking_store

logger = logging.getLogger(__name__)

BOOKING_TRANSITIONS: dict[str, set[str]] = {
    STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
    STATUS_CONFIRMED: {STATUS_PAID},
    STATUS_CANCELLED: set(),
    STATUS_PAID: set(),
}

ADMIN_DECISIONS = (STATUS_CONFIRMED, STATUS_CANCELLED)


def assert_transition(current: str, target: str) -> None:
    """Raise InvalidTransition unless ``current -> target`` is in the status graph."""
    if target not in BOOKING_TRANSITIONS.get(current, set()):
        raise InvalidTransition(f"Cannot change booking status from {current} to {target}")


def can_view(identity: Identity, booking: Booking) -> bool:
    """Admins, the booking's contractor and the property's owner may view a booking."""
    return (
        identity.is_admin
        or booking.contractor_id == identity.id
        or booking.property.owner_id == identity.id
    )


class BookingLifecycle:
    """Applies booking state transitions for one request/session."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationSink,
        background: BackgroundTasks | None = None,
    ) -> None:
        self._db = db
        self._notifier = notifier
        self._background = background

    async def _notify(self, event_type: str, data: dict[str, Any]) -> None:
        if self._background is not None:
            self._background.add_task(self._notifier.emit, event_type, data)
        else:
            await self._notifier.emit(event_type, data)

    async def _reload(self, booking_id: uuid.UUID) -> Booking:
        booking = await booking_store.get_booking(self._db, booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    async def get(self, identity: Identity, booking_id: uuid.UUID) -> Booking:
        """Return a booking the identity is allowed to see."""
        booking = await booking_store.get_booking(self._db, booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if not can_view(identity, booking):
            raise Forbidden("Access denied")
        return booking

    async def create(
        self,
        contractor: Identity,
        property_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> Booking:
        """Create a ``pending`` booking and emit ``booking_created``."""
        if end_date <= start_date:
            raise InvalidRange()

        prop = await booking_store.get_property(self._db, property_id)
        if prop is None:
            raise NotFound("Property not found")

        booking = await booking_store.create_booking(
            self._db,
            property_id=prop.id,
            contractor_id=contractor.id,
            start_date=start_date,
            end_date=end_date,
        )
        await self._db.commit()
        booking = await self._reload(booking.id)
        logger.info(
            "Booking %s created by %s for property %s (%s to %s)",
            booking.id,
            contractor.id,
            prop.id,
            start_date,
            end_date,
        )

        await self._notify(
            "booking_created",
            {
                "booking_id": str(booking.id),
                "property_id": str(booking.property_id),
                "contractor_id": str(booking.contractor_id),
                "start_date": booking.start_date.isoformat(),
                "end_date": booking.end_date.isoformat(),
                "property_title": prop.title,
                "contractor_name": contractor.full_name,
            },
        )
        return booking

    async def confirm(self, admin: Identity, booking_id: uuid.UUID, decision: str) -> Booking:
        """Apply an admin decision (``confirmed`` or ``cancelled``) to a pending booking."""
        if decision not in ADMIN_DECISIONS:
            raise InvalidTransition(f"Unsupported decision: {decision}")

        booking = await booking_store.get_booking(self._db, booking_id)
        if booking is None:
            raise NotFound("Booking not found")

        assert_transition(booking.status, decision)
        booking.status = decision
        await self._db.flush()
        await self._db.commit()
        booking = await self._reload(booking.id)
        logger.info("Booking %s %s by admin %s", booking.id, decision, admin.id)

        await self._notify(
            "booking_confirmed",
            {
                "booking_id": str(booking.id),
                "property_id": str(booking.property_id),
                "contractor_id": str(booking.contractor_id),
                "status": decision,
                "property_title": booking.property.title,
                "contractor_name": booking.contractor.full_name,
                "admin_name": admin.full_name,
            },
        )
        return booking

    async def mark_paid(
        self,
        session_id: str,
        amount_paid: Decimal | None = None,
        booking_id: uuid.UUID | None = None,
        payment_status: str | None = None,
    ) -> Booking:
        """Record a completed checkout: invoice and booking both become ``paid``.

        Safe to call again for the same session: an already-settled invoice and
        booking are returned unchanged and no second notification is sent. If
        only the invoice was settled, the booking is brought in line.
        """
        invoice = await booking_store.get_invoice_by_session(self._db, session_id)
        if invoice is None:
            logger.warning("No invoice found for checkout session %s", session_id)
            raise NotFound("Invoice not found")
        if booking_id is not None and invoice.booking_id != booking_id:
            raise InvalidEvent("Checkout session does not belong to the given booking")

        booking = await self._reload(invoice.booking_id)
        if invoice.status == INVOICE_PAID and booking.status == STATUS_PAID:
            logger.info("Checkout session %s already recorded as paid", session_id)
            return booking

        if booking.status != STATUS_PAID:
            assert_transition(booking.status, STATUS_PAID)

        # Only the delivery whose conditional UPDATE changed the invoice notifies
        settled_here = await booking_store.settle_invoice(self._db, session_id)
        booking.status = STATUS_PAID
        await self._db.flush()
        await self._db.commit()
        booking = await self._reload(booking.id)

        if not settled_here:
            logger.warning(
                "Checkout session %s was already settled; booking %s kept in line without notifying",
                session_id,
                booking.id,
            )
            return booking

        logger.info("Payment succeeded for booking %s (session %s)", booking.id, session_id)
        await self._notify(
            "payment_succeeded",
            {
                "booking_id": str(booking.id),
                "stripe_session_id": session_id,
                "amount_paid": float(amount_paid) if amount_paid is not None else float(invoice.amount),
                "payment_status": payment_status,
            },
        )
        return booking

    async def mark_expired(self, session_id: str, booking_id: uuid.UUID | None = None) -> None:
        """Report an expired checkout. The booking and invoice are left unchanged."""
        if booking_id is None:
            invoice = await booking_store.get_invoice_by_session(self._db, session_id)
            if invoice is not None:
                booking_id = invoice.booking_id

        if booking_id is None:
            logger.warning("Expired checkout session %s has no known booking", session_id)
            return

        logger.info("Payment session %s expired for booking %s", session_id, booking_id)
        await self._notify(
            "payment_expired",
            {
                "booking_id": str(booking_id),
                "stripe_session_id": session_id,
            },
        )

"""Payment bridge — Stripe Checkout for bookings and inbound payment events."""

import logging
import math
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.gate import Identity
from app.billing.stripe_client import CheckoutSession, StripeGateway
from app.billing.webhooks import EVENT_HANDLERS
from app.exceptions import Forbidden, InvalidTransition, NotFound, SignatureInvalid
from app.models.booking import STATUS_CONFIRMED
from app.models.invoice import Invoice
from app.services import booking_store
from app.services.booking_lifecycle import BookingLifecycle

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def billable_days(start_date: date, end_date: date) -> int:
    """Whole days between two dates, rounding any partial day up."""
    return math.ceil((end_date - start_date).total_seconds() / SECONDS_PER_DAY)


def booking_amount(price: Decimal, start_date: date, end_date: date) -> Decimal:
    """Amount due for a stay: daily price times billable days."""
    return Decimal(price) * billable_days(start_date, end_date)


class PaymentBridge:
    """Connects bookings to Stripe Checkout."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: StripeGateway,
        lifecycle: BookingLifecycle,
        frontend_url: str,
    ) -> None:
        self._db = db
        self._gateway = gateway
        self._lifecycle = lifecycle
        self._frontend_url = frontend_url.rstrip("/")

    async def initiate_checkout(
        self,
        booking_id: uuid.UUID,
        requester: Identity | None = None,
    ) -> tuple[CheckoutSession, Invoice]:
        """Open a Checkout Session for a confirmed booking and record its invoice.

        ``requester`` must be the booking's contractor or an admin when given.

        Raises:
            NotFound: The booking does not exist.
            Forbidden: The requester may not pay for this booking.
            InvalidTransition: The booking is not awaiting payment.
            UpstreamUnavailable: Stripe is not configured or unreachable.
        """
        booking = await booking_store.get_booking(self._db, booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if requester is not None and not requester.is_admin and booking.contractor_id != requester.id:
            raise Forbidden("Access denied")
        if booking.status != STATUS_CONFIRMED:
            raise InvalidTransition(
                f"Booking must be confirmed before payment (current status: {booking.status})"
            )

        amount = booking_amount(booking.property.price, booking.start_date, booking.end_date)
        session = await self._gateway.create_checkout_session(
            booking_id=str(booking.id),
            amount=amount,
            success_url=f"{self._frontend_url}/contractor?payment=success",
            cancel_url=f"{self._frontend_url}/contractor?payment=cancelled",
        )

        invoice = await booking_store.create_invoice(
            self._db,
            booking_id=booking.id,
            stripe_session_id=session.id,
            stripe_payment_url=session.url,
            amount=amount,
        )
        await self._db.commit()
        logger.info("Invoice %s created for booking %s (session %s)", invoice.id, booking.id, session.id)
        return session, invoice

    async def handle_inbound_event(self, raw_body: bytes, signature_header: str | None) -> str:
        """Verify and apply a Stripe webhook delivery.

        Returns:
            ``"processed"`` for handled event kinds, ``"ignored"`` otherwise.

        Raises:
            SignatureInvalid: Missing or bad signature; nothing is applied.
            InvalidEvent: The verified event lacks required data.
        """
        if not signature_header:
            raise SignatureInvalid("Missing stripe signature")

        event = self._gateway.verify_event(raw_body, signature_header)

        handler = EVENT_HANDLERS.get(event.type)
        if handler is None:
            logger.debug("Unhandled webhook event type: %s", event.type)
            return "ignored"

        logger.info("Processing webhook event: %s (id=%s)", event.type, event.id)
        await handler(self._lifecycle, event)
        return "processed"

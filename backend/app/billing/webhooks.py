"""Stripe webhook event handlers."""

import logging
import uuid
from collections.abc import Awaitable, Callable

from app.billing.stripe_client import PaymentEvent
from app.exceptions import InvalidEvent
from app.services.booking_lifecycle import BookingLifecycle

logger = logging.getLogger(__name__)


def _booking_uuid(value: str | None) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise InvalidEvent(f"Invalid booking ID in session metadata: {value!r}") from None


async def handle_checkout_session_completed(lifecycle: BookingLifecycle, event: PaymentEvent) -> None:
    """Handle checkout.session.completed — settle the invoice and the booking."""
    if not event.booking_id:
        logger.error("Missing booking_id in session metadata (event %s)", event.id)
        raise InvalidEvent("Missing booking ID")
    if not event.session_id:
        raise InvalidEvent("Missing checkout session ID")

    await lifecycle.mark_paid(
        event.session_id,
        amount_paid=event.amount_paid,
        booking_id=_booking_uuid(event.booking_id),
        payment_status=event.payment_status,
    )


async def handle_checkout_session_expired(lifecycle: BookingLifecycle, event: PaymentEvent) -> None:
    """Handle checkout.session.expired — notify only, the booking stays payable."""
    if not event.session_id:
        raise InvalidEvent("Missing checkout session ID")
    await lifecycle.mark_expired(event.session_id, _booking_uuid(event.booking_id))


# Map event types to handler functions
EVENT_HANDLERS: dict[str, Callable[[BookingLifecycle, PaymentEvent], Awaitable[None]]] = {
    "checkout.session.completed": handle_checkout_session_completed,
    "checkout.session.expired": handle_checkout_session_expired,
}

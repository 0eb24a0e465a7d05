"""Async Stripe API wrapper for booking payments."""

import json
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import stripe
from stripe import StripeClient

from app.exceptions import InvalidEvent, SignatureInvalid, UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    """The parts of a Stripe Checkout Session the booking flow needs."""

    id: str
    url: str | None


@dataclass(frozen=True)
class PaymentEvent:
    """A verified Stripe webhook event, reduced to checkout session fields."""

    id: str | None
    type: str
    session_id: str | None
    booking_id: str | None
    amount_total: int | None  # in cents
    payment_status: str | None

    @property
    def amount_paid(self) -> Decimal | None:
        if self.amount_total is None:
            return None
        return Decimal(self.amount_total) / 100


def to_cents(amount: Decimal) -> int:
    """Convert a decimal amount to Stripe's integer minor units."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeGateway:
    """Stripe collaborator used by the payment bridge.

    Always constructed, even without credentials: calls that need a missing
    secret raise ``UpstreamUnavailable`` / ``SignatureInvalid`` instead of the
    caller checking for a ``None`` client.
    """

    def __init__(self, secret_key: str, webhook_secret: str, currency: str = "usd") -> None:
        self._webhook_secret = webhook_secret
        self._currency = currency
        self._client: StripeClient | None = None
        if secret_key:
            self._client = StripeClient(secret_key, http_client=stripe.HTTPXClient())

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def create_checkout_session(
        self,
        booking_id: str,
        amount: Decimal,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """Create a one-off payment Checkout Session for a booking.

        Raises:
            UpstreamUnavailable: Stripe is not configured or the API call failed.
        """
        if self._client is None:
            raise UpstreamUnavailable(
                "Stripe is not configured. Please add STRIPE_SECRET_KEY to environment variables."
            )

        logger.info("Creating checkout session for booking %s, amount %s", booking_id, amount)
        try:
            session = await self._client.v1.checkout.sessions.create_async(
                params={
                    "mode": "payment",
                    "payment_method_types": ["card"],
                    "line_items": [
                        {
                            "price_data": {
                                "currency": self._currency,
                                "product_data": {
                                    "name": "Property Booking",
                                    "description": f"Booking ID: {booking_id}",
                                },
                                "unit_amount": to_cents(amount),
                            },
                            "quantity": 1,
                        }
                    ],
                    "success_url": success_url,
                    "cancel_url": cancel_url,
                    "metadata": {"booking_id": booking_id},
                }
            )
        except stripe.StripeError as e:
            logger.error("Stripe checkout error: %s", e)
            raise UpstreamUnavailable("Failed to create checkout session") from e

        logger.info("Created checkout session %s for booking %s", session.id, booking_id)
        return CheckoutSession(id=session.id, url=session.url)

    def verify_event(self, payload: bytes, sig_header: str) -> PaymentEvent:
        """Verify a webhook signature over the raw body, then parse the event.

        Nothing in the body is interpreted before the signature check passes.

        Raises:
            SignatureInvalid: Signing secret missing or signature mismatch.
            InvalidEvent: The verified body is not a usable event.
        """
        if not self._webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not configured; rejecting webhook")
            raise SignatureInvalid("Webhook signing secret not configured")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                sig_header,
                self._webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            logger.warning("Webhook signature verification failed")
            raise SignatureInvalid() from e

        try:
            event = json.loads(body)
            session = event["data"]["object"]
            event_type = event["type"]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Invalid webhook payload")
            raise InvalidEvent("Invalid payload") from e

        if not isinstance(session, dict) or not isinstance(event_type, str):
            logger.warning("Invalid webhook payload")
            raise InvalidEvent("Invalid payload")
        metadata = session.get("metadata") or {}
        return PaymentEvent(
            id=event.get("id"),
            type=event_type,
            session_id=session.get("id"),
            booking_id=metadata.get("booking_id"),
            amount_total=session.get("amount_total"),
            payment_status=session.get("payment_status"),
        )

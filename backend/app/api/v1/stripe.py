"""Stripe endpoints — checkout sessions for bookings and the webhook receiver."""

import logging

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_current_identity, get_payment_bridge
from app.auth.gate import Identity
from app.billing.payments import PaymentBridge
from app.schemas.billing import CreateSessionRequest, CreateSessionResponse, WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/stripe", tags=["stripe"])


@router.post("/create-session", response_model=CreateSessionResponse)
async def create_session(
    body: CreateSessionRequest,
    bridge: PaymentBridge = Depends(get_payment_bridge),
    identity: Identity = Depends(get_current_identity),
) -> CreateSessionResponse:
    """Create a Stripe Checkout session and an unpaid invoice for a confirmed booking."""
    session, invoice = await bridge.initiate_checkout(body.booking_id, requester=identity)
    return CreateSessionResponse.model_validate(
        {"session_id": session.id, "payment_url": session.url, "invoice": invoice},
        from_attributes=True,
    )


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    bridge: PaymentBridge = Depends(get_payment_bridge),
) -> WebhookAck:
    """Receive Stripe events. Unknown event kinds are acknowledged and ignored."""
    # Raw bytes: the signature covers the exact body Stripe sent
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    outcome = await bridge.handle_inbound_event(payload, sig_header)
    logger.debug("Webhook delivery %s", outcome)
    return WebhookAck(received=True)

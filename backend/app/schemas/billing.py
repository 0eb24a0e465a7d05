"""Pydantic v2 request/response schemas for Stripe checkout endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

# --- Request schemas ---


class CreateSessionRequest(BaseModel):
    """Request to open a Stripe Checkout session for a booking."""

    booking_id: uuid.UUID


# --- Response schemas ---


class InvoiceResponse(BaseModel):
    """An invoice for one checkout attempt."""

    id: uuid.UUID
    booking_id: uuid.UUID
    stripe_session_id: str
    stripe_payment_url: str | None = None
    amount: Decimal
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CreateSessionResponse(BaseModel):
    """Checkout session details returned to the frontend."""

    session_id: str
    payment_url: str | None
    invoice: InvoiceResponse


class WebhookAck(BaseModel):
    """Acknowledgement returned to Stripe for every verified delivery."""

    received: bool = True

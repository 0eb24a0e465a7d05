"""Pydantic v2 request/response schemas for booking endpoints."""

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.billing import InvoiceResponse
from app.schemas.profile import ProfileResponse
from app.schemas.property import PropertyResponse

BookingStatus = Literal["pending", "confirmed", "cancelled", "paid"]

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Schema for creating a new booking."""

    property_id: uuid.UUID
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_dates(self) -> "BookingCreate":
        """Validate that end_date is strictly after start_date."""
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class BookingDecision(BaseModel):
    """Admin decision on a pending booking."""

    status: Literal["confirmed", "cancelled"]


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BookingResponse(BaseModel):
    """Standard booking response."""

    id: uuid.UUID
    property_id: uuid.UUID
    contractor_id: uuid.UUID
    start_date: date
    end_date: date
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingDetailResponse(BookingResponse):
    """Booking with nested property, contractor and invoices.

    Used for single-booking views where the client needs the full context
    without extra round-trips.
    """

    property: PropertyResponse | None = None
    contractor: ProfileResponse | None = None
    invoices: list[InvoiceResponse] = Field(default_factory=list)


class BookingEnvelope(BaseModel):
    """Single booking wrapped in a ``booking`` key."""

    booking: BookingDetailResponse


class BookingListResponse(BaseModel):
    """Paginated list of bookings."""

    items: list[BookingDetailResponse]
    total: int

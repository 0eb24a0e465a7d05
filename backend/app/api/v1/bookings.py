"""Bookings API router.

Visibility rule: admins see every booking, contractors see their own and
landlords see bookings on properties they own.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_identity, get_db, get_lifecycle, require_contractor
from app.auth.gate import Identity
from app.schemas.booking import (
    BookingCreate,
    BookingEnvelope,
    BookingListResponse,
    BookingStatus,
)
from app.services import booking_store
from app.services.booking_lifecycle import BookingLifecycle

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List bookings visible to the current user",
)
async def list_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status", description="Filter by booking status"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> dict:
    """Return a paginated list of the bookings the caller may see."""
    items, total = await booking_store.list_bookings(
        db,
        offset=skip,
        limit=limit,
        status=status_filter,
        profile_id=identity.id,
        role=identity.role,
    )
    return {"items": items, "total": total}


@router.post(
    "/create",
    response_model=BookingEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new booking",
)
async def create_booking(
    body: BookingCreate,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
    identity: Identity = Depends(require_contractor),
) -> dict:
    """Book a property for the current contractor. The booking starts as ``pending``."""
    booking = await lifecycle.create(identity, body.property_id, body.start_date, body.end_date)
    return {"booking": booking}


@router.get(
    "/{booking_id}",
    response_model=BookingEnvelope,
    summary="Get booking detail with nested property, contractor and invoices",
)
async def get_booking(
    booking_id: uuid.UUID,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
    identity: Identity = Depends(get_current_identity),
) -> dict:
    """Retrieve a single booking.

    Returns 404 if the booking doesn't exist and 403 unless the caller is an
    admin, the booking's contractor or the property's owner.
    """
    booking = await lifecycle.get(identity, booking_id)
    return {"booking": booking}

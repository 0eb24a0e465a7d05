"""Admin API router: booking review and dashboard statistics."""

import dataclasses
import math
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_lifecycle, require_admin
from app.auth.gate import Identity
from app.schemas.admin import AdminBookingListResponse, DashboardResponse
from app.schemas.booking import BookingDecision, BookingEnvelope, BookingStatus
from app.services import booking_store
from app.services.booking_lifecycle import BookingLifecycle

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("/bookings", response_model=AdminBookingListResponse)
async def list_all_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: BookingStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> dict:
    """List every booking, newest first, with page-based pagination."""
    bookings, total = await booking_store.list_bookings(
        db,
        offset=(page - 1) * limit,
        limit=limit,
        status=status_filter,
    )
    return {
        "bookings": bookings,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


@router.put("/bookings/{booking_id}/confirm", response_model=BookingEnvelope)
async def confirm_booking(
    booking_id: uuid.UUID,
    body: BookingDecision,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
    admin: Identity = Depends(require_admin),
) -> dict:
    """Confirm or cancel a pending booking."""
    booking = await lifecycle.confirm(admin, booking_id, body.status)
    return {"booking": booking}


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> dict:
    """Aggregate counts plus the five most recent bookings."""
    stats = await booking_store.dashboard_stats(db)
    recent = await booking_store.recent_bookings(db, limit=5)
    return {"stats": dataclasses.asdict(stats), "recent_bookings": recent}

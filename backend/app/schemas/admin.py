"""Pydantic v2 response schemas for admin endpoints."""

from pydantic import BaseModel

from app.schemas.booking import BookingDetailResponse


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AdminBookingListResponse(BaseModel):
    """One page of bookings across all properties."""

    bookings: list[BookingDetailResponse]
    pagination: Pagination


class DashboardStatsResponse(BaseModel):
    total_bookings: int
    total_properties: int
    total_users: int
    pending_bookings: int
    paid_bookings: int


class DashboardResponse(BaseModel):
    """Aggregate counts plus the most recent bookings."""

    stats: DashboardStatsResponse
    recent_bookings: list[BookingDetailResponse]

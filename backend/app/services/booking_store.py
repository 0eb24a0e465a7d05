"""Query helpers over profiles, properties, bookings and invoices."""

import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.booking import STATUS_PAID, STATUS_PENDING, Booking
from app.models.invoice import INVOICE_PAID, INVOICE_UNPAID, Invoice
from app.models.profile import ROLE_ADMIN, ROLE_LANDLORD, Profile
from app.models.property import Property


def _booking_query() -> Select[tuple[Booking]]:
    """Bookings with property, contractor and invoices loaded."""
    return select(Booking).options(
        selectinload(Booking.property),
        selectinload(Booking.contractor),
        selectinload(Booking.invoices),
    )


async def get_property(db: AsyncSession, property_id: uuid.UUID) -> Property | None:
    result = await db.execute(select(Property).where(Property.id == property_id))
    return result.scalar_one_or_none()


async def get_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking | None:
    """Fetch a booking with its relations, refreshing any stale identity-map copy."""
    result = await db.execute(
        _booking_query()
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_invoice_by_session(db: AsyncSession, stripe_session_id: str) -> Invoice | None:
    """Look up an invoice by Stripe Checkout Session ID (used by webhooks)."""
    result = await db.execute(
        select(Invoice)
        .where(Invoice.stripe_session_id == stripe_session_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_booking(
    db: AsyncSession,
    property_id: uuid.UUID,
    contractor_id: uuid.UUID,
    start_date,
    end_date,
) -> Booking:
    booking = Booking(
        property_id=property_id,
        contractor_id=contractor_id,
        start_date=start_date,
        end_date=end_date,
        status=STATUS_PENDING,
    )
    db.add(booking)
    await db.flush()
    return booking


async def create_invoice(
    db: AsyncSession,
    booking_id: uuid.UUID,
    stripe_session_id: str,
    stripe_payment_url: str | None,
    amount: Decimal,
) -> Invoice:
    invoice = Invoice(
        booking_id=booking_id,
        stripe_session_id=stripe_session_id,
        stripe_payment_url=stripe_payment_url,
        amount=amount,
        status=INVOICE_UNPAID,
    )
    db.add(invoice)
    await db.flush()
    await db.refresh(invoice)
    return invoice


async def settle_invoice(db: AsyncSession, stripe_session_id: str) -> bool:
    """Flip an unpaid invoice to paid. Returns False if it was already paid.

    The status guard sits in the UPDATE itself: overlapping deliveries queue on
    the row lock and only the first one changes a row.
    """
    result = await db.execute(
        update(Invoice)
        .where(
            Invoice.stripe_session_id == stripe_session_id,
            Invoice.status == INVOICE_UNPAID,
        )
        .values(status=INVOICE_PAID)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def visible_bookings_filter(query: Select, profile_id: uuid.UUID, role: str) -> Select:
    """Restrict a booking query to what a profile may see.

    Admins see everything, landlords see bookings on their properties and
    contractors see their own bookings.
    """
    if role == ROLE_ADMIN:
        return query
    if role == ROLE_LANDLORD:
        return query.join(Property, Booking.property_id == Property.id).where(
            Property.owner_id == profile_id
        )
    return query.where(Booking.contractor_id == profile_id)


async def list_bookings(
    db: AsyncSession,
    *,
    offset: int,
    limit: int,
    status: str | None = None,
    profile_id: uuid.UUID | None = None,
    role: str = ROLE_ADMIN,
) -> tuple[list[Booking], int]:
    """Return one page of bookings (newest first) and the total match count."""
    base_query = _booking_query()
    count_query = select(func.count()).select_from(Booking)

    if profile_id is not None:
        base_query = visible_bookings_filter(base_query, profile_id, role)
        count_query = visible_bookings_filter(count_query, profile_id, role)
    if status is not None:
        base_query = base_query.where(Booking.status == status)
        count_query = count_query.where(Booking.status == status)

    total_result = await db.execute(count_query)
    total = total_result.scalar_one()

    items_query = base_query.order_by(Booking.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(items_query)
    return list(result.scalars().all()), total


@dataclass(frozen=True)
class DashboardStats:
    total_bookings: int
    total_properties: int
    total_users: int
    pending_bookings: int
    paid_bookings: int


async def _count(db: AsyncSession, query: Select) -> int:
    result = await db.execute(query)
    return result.scalar_one()


async def dashboard_stats(db: AsyncSession) -> DashboardStats:
    """Aggregate counts for the admin dashboard."""
    bookings = select(func.count()).select_from(Booking)
    return DashboardStats(
        total_bookings=await _count(db, bookings),
        total_properties=await _count(db, select(func.count()).select_from(Property)),
        total_users=await _count(db, select(func.count()).select_from(Profile)),
        pending_bookings=await _count(db, bookings.where(Booking.status == STATUS_PENDING)),
        paid_bookings=await _count(db, bookings.where(Booking.status == STATUS_PAID)),
    )


async def recent_bookings(db: AsyncSession, limit: int = 5) -> list[Booking]:
    result = await db.execute(_booking_query().order_by(Booking.created_at.desc()).limit(limit))
    return list(result.scalars().all())

"""Seed the database with sample profiles, properties, bookings and invoices.

Profiles normally come from the identity provider; the seed creates three
fixed-id demo profiles (admin, landlord, contractor) so the API can be
exercised locally with tokens minted for those ids.

Run inside Docker:
    docker compose exec backend python -m scripts.seed_data
"""

import asyncio
import sys
import uuid
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.payments import booking_amount
from app.database import async_session_factory, engine
from app.models.booking import STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_PAID, STATUS_PENDING, Booking
from app.models.invoice import INVOICE_PAID, INVOICE_UNPAID, Invoice
from app.models.profile import ROLE_ADMIN, ROLE_CONTRACTOR, ROLE_LANDLORD, Profile
from app.models.property import Property

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_PROFILES = [
    {
        "id": uuid.UUID("00000000-0000-4000-8000-000000000001"),
        "email": "admin@bookings.test",
        "full_name": "Demo Admin",
        "role": ROLE_ADMIN,
    },
    {
        "id": uuid.UUID("00000000-0000-4000-8000-000000000002"),
        "email": "landlord@bookings.test",
        "full_name": "Demo Landlord",
        "role": ROLE_LANDLORD,
    },
    {
        "id": uuid.UUID("00000000-0000-4000-8000-000000000003"),
        "email": "contractor@bookings.test",
        "full_name": "Demo Contractor",
        "role": ROLE_CONTRACTOR,
    },
]

PROPERTIES = [
    {
        "title": "Harbourside Two Bedroom",
        "description": "Furnished apartment a short walk from the container terminal.",
        "address": "14 Quay Street, Auckland",
        "latitude": -36.8433,
        "longitude": 174.7669,
        "price": Decimal("145.00"),
    },
    {
        "title": "Industrial Estate Cabin",
        "description": "Self-contained cabin with parking for a work van.",
        "address": "3 Foundry Road, Silverdale",
        "latitude": -36.6206,
        "longitude": 174.6750,
        "price": Decimal("85.00"),
    },
    {
        "title": "Rural Crew House",
        "description": "Four bedrooms, sleeps a full crew. Gravel driveway.",
        "address": "220 Matakana Valley Road, Matakana",
        "latitude": None,
        "longitude": None,
        "price": Decimal("210.00"),
    },
]

# (property index, start offset in days, length in days, booking status)
BOOKINGS = [
    (0, -20, 5, STATUS_PAID),
    (0, 10, 3, STATUS_CONFIRMED),
    (1, 5, 7, STATUS_PENDING),
    (1, 30, 2, STATUS_CANCELLED),
    (2, 14, 10, STATUS_PENDING),
]


async def populate(session: AsyncSession, today: date | None = None) -> dict[str, int]:
    """Replace the demo rows and return how many of each were created.

    Idempotent: demo profiles are matched by their fixed ids and everything
    they own is deleted before re-seeding.
    """
    today = today or date.today()
    demo_ids = [p["id"] for p in DEMO_PROFILES]

    # Invoices go with their bookings through ON DELETE CASCADE
    await session.execute(delete(Booking).where(Booking.contractor_id.in_(demo_ids)))
    await session.execute(delete(Property).where(Property.owner_id.in_(demo_ids)))
    await session.execute(delete(Profile).where(Profile.id.in_(demo_ids)))
    await session.flush()

    profiles = {data["role"]: Profile(**data) for data in DEMO_PROFILES}
    session.add_all(profiles.values())
    await session.flush()

    properties = [Property(owner_id=profiles[ROLE_LANDLORD].id, **data) for data in PROPERTIES]
    session.add_all(properties)
    await session.flush()

    invoice_count = 0
    for index, offset, length, status in BOOKINGS:
        prop = properties[index]
        start = today + timedelta(days=offset)
        end = start + timedelta(days=length)
        booking = Booking(
            property_id=prop.id,
            contractor_id=profiles[ROLE_CONTRACTOR].id,
            start_date=start,
            end_date=end,
            status=status,
        )
        session.add(booking)
        await session.flush()

        # Paid bookings carry a paid invoice, confirmed ones an open checkout
        if status in (STATUS_PAID, STATUS_CONFIRMED):
            session.add(
                Invoice(
                    booking_id=booking.id,
                    stripe_session_id=f"cs_seed_{booking.id.hex}",
                    stripe_payment_url=None,
                    amount=booking_amount(prop.price, start, end),
                    status=INVOICE_PAID if status == STATUS_PAID else INVOICE_UNPAID,
                )
            )
            invoice_count += 1

    await session.flush()
    return {
        "profiles": len(profiles),
        "properties": len(properties),
        "bookings": len(BOOKINGS),
        "invoices": invoice_count,
    }


# ---------------------------------------------------------------------------
# Main seed function
# ---------------------------------------------------------------------------


async def seed() -> None:
    """Populate the database with sample data and print a summary."""
    async with async_session_factory() as session:
        counts = await populate(session)
        await session.commit()

    print("=" * 60)
    print("Seed Summary")
    print("=" * 60)
    for name, count in counts.items():
        print(f"   {name.title():<12} {count}")
    for data in DEMO_PROFILES:
        print(f"   {data['role']:<12} {data['id']}")
    print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())

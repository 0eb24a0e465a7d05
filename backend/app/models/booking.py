"""Booking model — a contractor's reservation of a property."""

import uuid
from datetime import date

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
STATUS_PAID = "paid"
BOOKING_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED, STATUS_PAID)


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A reservation linking a contractor to a property for specific dates.

    Bookings are never deleted; they only move through the status lifecycle
    defined in ``app.services.booking_lifecycle``.
    """

    __tablename__ = "bookings"

    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        default=STATUS_PENDING,
        nullable=False,
        index=True,
    )  # pending, confirmed, cancelled, paid

    # Relationships
    property: Mapped["Property"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    contractor: Mapped["Profile"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    invoices: Mapped[list["Invoice"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="booking",
        lazy="selectin",
        order_by="Invoice.created_at",
    )

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_bookings_date_range"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'paid')",
            name="ck_bookings_status",
        ),
        Index("ix_bookings_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, property_id={self.property_id}, "
            f"contractor_id={self.contractor_id}, status={self.status})>"
        )

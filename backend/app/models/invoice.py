"""Invoice model. One row per Stripe Checkout attempt for a booking."""

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

INVOICE_UNPAID = "unpaid"
INVOICE_PAID = "paid"


class Invoice(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Amount due for a booking, correlated to a Stripe Checkout Session."""

    __tablename__ = "invoices"

    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stripe_session_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    stripe_payment_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=INVOICE_UNPAID)  # unpaid, paid

    # Relationships
    booking: Mapped["Booking"] = relationship(back_populates="invoices", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("status IN ('unpaid', 'paid')", name="ck_invoices_status"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, booking_id={self.booking_id}, status={self.status})>"

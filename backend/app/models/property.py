"""Property model — rentable properties listed by landlords."""

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, Float, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Property(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A property owned by a landlord profile and booked by contractors."""

    __tablename__ = "properties"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, default=None)
    longitude: Mapped[float | None] = mapped_column(Float, default=None)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)  # per day

    # Relationships
    owner: Mapped["Profile"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (CheckConstraint("price > 0", name="ck_properties_price_positive"),)

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title!r}, price={self.price})>"

"""Profile model — identity records owned by the identity provider."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

ROLE_CONTRACTOR = "contractor"
ROLE_LANDLORD = "landlord"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CONTRACTOR, ROLE_LANDLORD, ROLE_ADMIN)


class Profile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A user's profile. ``id`` is the identity provider's subject for the user.

    Rows are created and maintained by the identity provider; the booking
    service only reads them.
    """

    __tablename__ = "profiles"

    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default=ROLE_CONTRACTOR)

    def __repr__(self) -> str:
        return f"<Profile id={self.id} full_name={self.full_name!r} role={self.role!r}>"

"""SQLAlchemy models for the property booking service.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from app.models.booking import Booking
from app.models.invoice import Invoice
from app.models.profile import Profile
from app.models.property import Property

__all__ = [
    "Booking",
    "Invoice",
    "Profile",
    "Property",
]

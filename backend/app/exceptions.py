"""Domain exceptions raised by the booking, identity and payment layers.

Each exception carries the HTTP status it maps to; the handlers registered in
``app.main`` turn them into ``{"detail": ...}`` responses so routers and
services never build ``HTTPException`` objects for domain failures.
"""

from fastapi import status


class BookingError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidRange(BookingError):
    """end_date is not strictly after start_date."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "End date must be after start date"


class Unauthenticated(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid or expired token"


class ProfileNotFound(Unauthenticated):
    """Valid credential without a matching profile row."""

    default_detail = "User profile not found"


class Forbidden(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class InvalidTransition(BookingError):
    """The requested status change is not allowed from the current status."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Invalid booking status transition"


class SignatureInvalid(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Webhook signature verification failed"


class InvalidEvent(BookingError):
    """A verified payment event is missing data needed to apply it."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid webhook event"


class UpstreamUnavailable(BookingError):
    """An external collaborator is unreachable or not configured."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Upstream service unavailable"

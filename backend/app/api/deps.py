"""Shared API dependencies — single import point for all routers.

Re-exports database session and authentication dependencies, and builds the
request-scoped lifecycle engine and payment bridge from the collaborators
created at startup (``app.state``)::

    from app.api.deps import get_db, get_current_identity, get_lifecycle
"""

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import (
    get_current_identity,
    require_admin,
    require_contractor,
    require_landlord,
    require_roles,
)
from app.billing.payments import PaymentBridge
from app.billing.stripe_client import StripeGateway
from app.config import settings
from app.database import get_db
from app.notifications.sink import NotificationSink
from app.services.booking_lifecycle import BookingLifecycle


def get_notification_sink(request: Request) -> NotificationSink:
    return request.app.state.notification_sink


def get_payment_gateway(request: Request) -> StripeGateway:
    return request.app.state.payment_gateway


async def get_lifecycle(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationSink = Depends(get_notification_sink),
) -> BookingLifecycle:
    """Lifecycle engine bound to the request's session; notifications run as background tasks."""
    return BookingLifecycle(db, notifier, background_tasks)


async def get_payment_bridge(
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> PaymentBridge:
    return PaymentBridge(db, gateway, lifecycle, frontend_url=settings.frontend_url)


__all__ = [
    "get_db",
    "get_current_identity",
    "require_roles",
    "require_admin",
    "require_landlord",
    "require_contractor",
    "get_notification_sink",
    "get_payment_gateway",
    "get_lifecycle",
    "get_payment_bridge",
]

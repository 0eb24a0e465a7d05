"""Automation integration endpoints — relay events and describe the event catalog."""

from fastapi import APIRouter, Depends

from app.api.deps import get_notification_sink
from app.notifications.sink import EVENT_CATALOG, NotificationSink
from app.schemas.integrations import (
    EventCatalogResponse,
    ForwardEventRequest,
    ForwardEventResponse,
)

router = APIRouter(prefix="/api/v1/integrations", tags=["integrations"])


@router.post("/ghl", response_model=ForwardEventResponse, response_model_exclude_none=True)
async def forward_to_ghl(
    body: ForwardEventRequest,
    sink: NotificationSink = Depends(get_notification_sink),
) -> ForwardEventResponse:
    """Forward an event to the GoHighLevel webhook. A missing URL is a no-op success."""
    upstream_status = await sink.forward(body.model_dump(exclude_none=True))
    if upstream_status is None:
        return ForwardEventResponse(forwarded=False, message="GHL webhook URL not configured")
    return ForwardEventResponse(forwarded=True, upstream_status=upstream_status)


@router.get("/events", response_model=EventCatalogResponse)
async def list_events(
    sink: NotificationSink = Depends(get_notification_sink),
) -> EventCatalogResponse:
    """Describe the lifecycle events sent to the automation webhook."""
    return EventCatalogResponse(
        available_events=EVENT_CATALOG,
        webhook_url="configured" if sink.configured else "not configured",
    )

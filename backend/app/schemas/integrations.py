"""Pydantic v2 schemas for automation integration endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class ForwardEventRequest(BaseModel):
    """An event to relay to the automation webhook."""

    event_type: str = Field(..., min_length=1)
    data: dict[str, Any]
    timestamp: str | None = None


class ForwardEventResponse(BaseModel):
    success: bool = True
    forwarded: bool
    upstream_status: int | None = None
    message: str | None = None


class EventDescription(BaseModel):
    event_type: str
    description: str
    payload: dict[str, str]


class EventCatalogResponse(BaseModel):
    available_events: list[EventDescription]
    webhook_url: str  # "configured" or "not configured"

"""Outbound notification sink — best-effort forwarding of lifecycle events.

Events are POSTed as JSON to the configured automation webhook
(``GHL_WEBHOOK_URL``). Delivery is attempted once with a bounded timeout;
failures are logged and never propagated to the caller.
"""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from app.exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)

SOURCE = "property-booking-system"
USER_AGENT = "Property-Booking-System/1.0"

# Event kinds emitted by the booking lifecycle, with their payload shapes.
EVENT_CATALOG: list[dict[str, Any]] = [
    {
        "event_type": "booking_created",
        "description": "Triggered when a new booking is created by a contractor",
        "payload": {
            "booking_id": "string",
            "property_id": "string",
            "contractor_id": "string",
            "start_date": "string",
            "end_date": "string",
            "property_title": "string",
            "contractor_name": "string",
        },
    },
    {
        "event_type": "booking_confirmed",
        "description": "Triggered when an admin confirms or cancels a booking",
        "payload": {
            "booking_id": "string",
            "property_id": "string",
            "contractor_id": "string",
            "status": "confirmed|cancelled",
            "property_title": "string",
            "contractor_name": "string",
            "admin_name": "string",
        },
    },
    {
        "event_type": "payment_succeeded",
        "description": "Triggered when a payment is successfully completed",
        "payload": {
            "booking_id": "string",
            "stripe_session_id": "string",
            "amount_paid": "number",
            "payment_status": "string",
        },
    },
    {
        "event_type": "payment_expired",
        "description": "Triggered when a payment session expires",
        "payload": {
            "booking_id": "string",
            "stripe_session_id": "string",
        },
    },
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class NotificationSink:
    """Posts event payloads to an external automation endpoint.

    A single ``httpx.AsyncClient`` is shared by every request; the sink is
    created at application startup and closed on shutdown.
    """

    def __init__(
        self,
        webhook_url: str | None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.webhook_url = webhook_url or None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )

    @property
    def configured(self) -> bool:
        return self.webhook_url is not None

    async def emit(self, event_type: str, data: dict[str, Any]) -> bool:
        """Deliver one lifecycle event. Never raises.

        Returns:
            True if the endpoint accepted the event, False otherwise
            (including when no endpoint is configured).
        """
        if self.webhook_url is None:
            logger.info("Notification webhook URL not configured, skipping %s event", event_type)
            return False

        payload = {
            "event_type": event_type,
            "data": data,
            "timestamp": _now_iso(),
            "source": SOURCE,
        }
        try:
            response = await self._client.post(self.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Failed to send %s event: endpoint returned %s",
                event_type,
                e.response.status_code,
            )
            return False
        except httpx.HTTPError as e:
            logger.warning("Failed to send %s event: %s", event_type, e)
            return False
        except Exception:
            logger.exception("Unexpected error sending %s event", event_type)
            return False

        logger.info("Sent %s event to notification webhook", event_type)
        return True

    async def forward(self, payload: dict[str, Any]) -> int | None:
        """Relay an externally supplied event to the automation endpoint.

        Returns:
            The endpoint's HTTP status, or None when no endpoint is configured.

        Raises:
            UpstreamUnavailable: If the endpoint is unreachable or rejects the event.
        """
        if self.webhook_url is None:
            logger.warning("Notification webhook URL not configured, skipping forward")
            return None

        body = {**payload, "source": SOURCE, "forwarded_at": _now_iso()}
        try:
            response = await self._client.post(self.webhook_url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Error forwarding %s event: %s", payload.get("event_type"), e)
            raise UpstreamUnavailable("Failed to forward event to notification webhook") from e

        logger.info("Forwarded %s event: %s", payload.get("event_type"), response.status_code)
        return response.status_code

    async def aclose(self) -> None:
        await self._client.aclose()

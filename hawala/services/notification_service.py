"""
Notification service — status-change delivery to the notification subsystem.

Status changes are posted as JSON to ``NOTIFICATION_WEBHOOK_URL``; the
receiving system decides how to reach senders and receivers (SMS, chat).
No phone numbers or internal ids leave this service.
"""

import logging

import httpx

from hawala.config import settings
from hawala.services.ledger import StatusChangeEvent

logger = logging.getLogger(__name__)


def event_payload(event: StatusChangeEvent) -> dict:
    """JSON-safe body for one status change."""
    return {
        "reference_code": event.reference_code,
        "from_status": event.from_status.value if event.from_status else None,
        "to_status": event.to_status.value,
        "occurred_at": event.occurred_at.isoformat(),
        "completed_at": event.completed_at.isoformat() if event.completed_at else None,
    }


class NotificationService:
    """Posts status updates to the configured webhook."""

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None):
        self.webhook_url = settings.NOTIFICATION_WEBHOOK_URL if webhook_url is None else webhook_url
        self.timeout = timeout or settings.NOTIFICATION_WEBHOOK_TIMEOUT_SECONDS

    async def send_status_update(self, payload: dict) -> dict:
        """POST *payload*; returns a delivery summary."""
        if not self.webhook_url:
            logger.debug("No notification webhook configured; dropping %s", payload["reference_code"])
            return {"reference_code": payload["reference_code"], "status": "skipped"}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(self.webhook_url, json=payload)
            resp.raise_for_status()

        return {
            "reference_code": payload["reference_code"],
            "status": "delivered",
            "http_status": resp.status_code,
        }


notification_service = NotificationService()

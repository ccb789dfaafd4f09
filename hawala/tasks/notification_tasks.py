"""
Notification Celery tasks — background delivery of status-change events.

``dispatch_status_change`` is registered as a ledger subscriber; it only
enqueues, so API responses never wait on the webhook.
"""

import asyncio
import logging

from hawala.services.ledger import StatusChangeEvent
from hawala.services.notification_service import event_payload, notification_service
from hawala.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="hawala.tasks.notification_tasks.send_status_update")
def send_status_update(payload: dict):
    """Deliver one status change to the notification webhook."""
    loop = asyncio.new_event_loop()
    try:
        result = loop.run_until_complete(notification_service.send_status_update(payload))
        logger.info(
            "Status update for %s (%s) %s",
            payload["reference_code"], payload["to_status"], result["status"],
        )
        return result
    finally:
        loop.close()


async def dispatch_status_change(event: StatusChangeEvent) -> None:
    """Ledger subscriber: enqueue a webhook delivery for *event*."""
    send_status_update.delay(event_payload(event))

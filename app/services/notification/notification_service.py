import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.alerts.notification_queue import NotificationQueue
from app.models.requisition.requisition import Requisition
from app.models.shared.enums import NotificationStatus
from app.services.communication.webhook_service import WebhookClient

logger = logging.getLogger(__name__)

REQUISITION_SUBMITTED = "REQUISITION_SUBMITTED"

# Called with an outbox row id once the surrounding transaction has committed
NotificationDispatcher = Callable[[int], None]


def enqueue_notification_delivery(notification_id: int) -> None:
    """Default dispatcher: hand the outbox row to the Celery worker"""
    from app.workers.celery_tasks.notification_tasks import deliver_notification

    deliver_notification.delay(notification_id)


class NotificationService:
    """Outbox for post-commit notifications"""

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: Optional[NotificationDispatcher] = None,
        client: Optional[WebhookClient] = None,
    ):
        self.db = db
        self.dispatcher = dispatcher or enqueue_notification_delivery
        self.client = client or WebhookClient()

    def stage_requisition_submitted(
        self,
        requisition: Requisition,
        orders: List[Dict[str, Any]]
    ) -> Optional[NotificationQueue]:
        """Add the outbox row to the caller's transaction"""
        if not settings.NOTIFICATIONS_ENABLED:
            return None

        notification = NotificationQueue(
            notification_type=REQUISITION_SUBMITTED,
            recipient_id=requisition.user_id,
            subject=f"Requisition #{requisition.id}",
            payload={
                "event": REQUISITION_SUBMITTED,
                "requisition_id": requisition.id,
                "user_id": requisition.user_id,
                "orders": orders,
            },
            status=NotificationStatus.PENDING.value,
            max_retries=settings.NOTIFY_MAX_RETRIES,
            reference_type="requisition",
            reference_id=requisition.id,
        )
        self.db.add(notification)
        return notification

    def dispatch_after_commit(self, notification_id: Optional[int]) -> bool:
        """Best effort: a failing broker is logged and never reaches the caller"""
        if notification_id is None:
            return False
        try:
            self.dispatcher(notification_id)
            return True
        except Exception as e:
            logger.warning(f"Could not enqueue notification {notification_id}: {str(e)}")
            return False

    async def deliver(self, notification_id: int) -> NotificationQueue:
        """Send one outbox row and record the outcome"""
        result = await self.db.execute(
            select(NotificationQueue).where(NotificationQueue.id == notification_id)
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")

        if notification.status in (NotificationStatus.SENT.value, NotificationStatus.SKIPPED.value):
            return notification

        response = await self.client.send(notification.payload)
        if response["status"] == "ok":
            notification.status = NotificationStatus.SENT.value
            notification.sent_at = datetime.now(timezone.utc)
            notification.error_message = None
        elif response["status"] == "skipped":
            notification.status = NotificationStatus.SKIPPED.value
        else:
            notification.status = NotificationStatus.FAILED.value
            notification.retry_count = (notification.retry_count or 0) + 1
            notification.error_message = str(response.get("exception") or response.get("code"))

        await self.db.commit()
        logger.info(f"Notification {notification_id} delivery finished with status {notification.status}")
        return notification

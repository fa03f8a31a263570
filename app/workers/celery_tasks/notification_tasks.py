"""
Post-commit notification delivery.

Each run owns its event loop and a NullPool engine, so no connection outlives
the loop it was opened on.
"""
import asyncio
import logging
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.database import build_engine
from app.models.shared.enums import NotificationStatus
from app.services.communication.webhook_service import WebhookClient
from app.services.notification.notification_service import NotificationService

logger = logging.getLogger(__name__)

worker_engine = build_engine(settings.DATABASE_URL, poolclass=NullPool)

worker_session_maker = async_sessionmaker(
    bind=worker_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def run_async_in_celery(coro):
    """Run a coroutine on a fresh event loop and close it afterwards"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        pending = asyncio.all_tasks(loop)
        for task in pending:
            task.cancel()
        if pending:
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        loop.close()
        asyncio.set_event_loop(None)


async def deliver_notification_async(
    notification_id: int,
    session_factory: Optional[async_sessionmaker] = None,
    client: Optional[WebhookClient] = None,
) -> Dict[str, Any]:
    """Deliver one outbox row and report what happened to it"""
    async with (session_factory or worker_session_maker)() as db:
        notification = await NotificationService(db, client=client).deliver(notification_id)
        return {
            "notification_id": notification.id,
            "status": notification.status,
            "retry_count": notification.retry_count or 0,
            "max_retries": notification.max_retries or 0,
        }


@celery_app.task(bind=True, max_retries=settings.NOTIFY_MAX_RETRIES, default_retry_delay=60)
def deliver_notification(self, notification_id: int):
    """Send a staged requisition notification to the collaborator webhook"""
    result = run_async_in_celery(deliver_notification_async(notification_id))

    if result["status"] == NotificationStatus.FAILED.value and result["retry_count"] < result["max_retries"]:
        logger.warning(
            f"Notification {notification_id} failed "
            f"(attempt {result['retry_count']}/{result['max_retries']}), retrying"
        )
        raise self.retry(countdown=60 * result["retry_count"])

    logger.info(f"Notification {notification_id} finished with status {result['status']}")
    return result

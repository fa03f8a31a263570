from typing import Any, Dict, Optional
import logging
import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

class WebhookClient:
    """
    Minimal async client for the notification collaborator.
    Posts the outbox payload as JSON to NOTIFY_WEBHOOK_URL; rendering and
    delivery to chats is the collaborator's job.
    """
    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url: Optional[str] = url if url is not None else settings.NOTIFY_WEBHOOK_URL
        self.timeout: float = timeout if timeout is not None else settings.NOTIFY_TIMEOUT_SECONDS
        self.transport = transport

    async def send(self, payload: Dict[str, Any]) -> dict:
        if not self.url:
            logger.info("Notification webhook not configured; skipping actual call.")
            return {"status": "skipped"}

        timeout = httpx.Timeout(self.timeout, connect=self.timeout)
        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            try:
                r = await client.post(self.url, json=payload)
                data = r.json() if r.headers.get("content-type", "").startswith("application/json") else {"text": r.text}
                if r.is_success:
                    return {"status": "ok", "provider_response": data}
                else:
                    logger.error("Notification webhook failed: %s | %s", r.status_code, data)
                    return {"status": "error", "code": r.status_code, "provider_response": data}
            except httpx.HTTPError as e:
                logger.exception("Notification webhook exception: %s", e)
                return {"status": "error", "exception": str(e)}

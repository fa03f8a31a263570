import logging
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.system.audit_log import AuditLog
from app.models.shared.enums import AuditAction

logger = logging.getLogger(__name__)


class AuditService:
    """Writes audit rows into the caller's transaction; never commits on its own"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def record(
        self,
        entity: str,
        entity_id: Optional[int],
        action: AuditAction,
        user_id: Optional[str],
        payload: Optional[Dict[str, Any]] = None
    ) -> AuditLog:
        entry = AuditLog(
            entity=entity,
            entity_id=entity_id,
            action=action.value,
            user_id=user_id,
            payload_json=payload or {},
        )
        self.session.add(entry)
        logger.debug(f"Audit {action.value} {entity} {entity_id or ''} by {user_id}")
        return entry

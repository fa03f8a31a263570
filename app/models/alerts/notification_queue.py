from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from app.db.base import BaseModel
from app.models.shared.enums import NotificationStatus

class NotificationQueue(BaseModel):
    """Outbox row written in the same transaction as the event it announces"""
    __tablename__ = 'notification_queue'

    notification_type = Column(String(50), nullable=False)  # REQUISITION_SUBMITTED
    recipient_id = Column(String(64))  # Principal ID the event concerns
    subject = Column(String(500))
    payload = Column(JSON, nullable=False)
    status = Column(String(20), default=NotificationStatus.PENDING.value, nullable=False)
    sent_at = Column(DateTime(timezone=True))
    retry_count = Column(Integer, default=0, nullable=False)
    max_retries = Column(Integer, default=3, nullable=False)
    error_message = Column(Text)
    reference_type = Column(String(50))
    reference_id = Column(Integer)

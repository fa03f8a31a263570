from sqlalchemy import Column, Integer, String, JSON
from app.db.base import BaseModel

class AuditLog(BaseModel):
    __tablename__ = "audit_log"

    entity = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=True)
    action = Column(String(50), nullable=False)
    user_id = Column(String(64), nullable=True)
    payload_json = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<AuditLog {self.action} on {self.entity} {self.entity_id}>"

from sqlalchemy import Column, String, Enum as SQLEnum
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
from app.models.shared.enums import RequisitionStatus

class Requisition(BaseModel):
    __tablename__ = 'requisitions'

    user_id = Column(String(64), nullable=False, index=True)  # Principal ID of the submitter
    status = Column(SQLEnum(RequisitionStatus), default=RequisitionStatus.CREATED, nullable=False)

    # Relationships
    items = relationship(
        "RequisitionItem",
        back_populates="requisition",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    orders = relationship(
        "Order",
        back_populates="requisition",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

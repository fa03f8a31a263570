from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
from app.models.shared.enums import OrderStatus

class Order(BaseModel):
    __tablename__ = 'orders'
    __table_args__ = (
        # One order per supplier within a requisition
        UniqueConstraint("requisition_id", "supplier_id", name="uq_orders_requisition_supplier"),
    )

    requisition_id = Column(Integer, ForeignKey('requisitions.id', ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id', ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)

    # Relationships
    requisition = relationship("Requisition", back_populates="orders")
    supplier = relationship("Supplier", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

from sqlalchemy import Column, Integer, Float, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class RequisitionItem(BaseModel):
    __tablename__ = 'requisition_items'

    requisition_id = Column(Integer, ForeignKey('requisitions.id', ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete="CASCADE"), nullable=False, index=True)
    qty_requested = Column(Float, nullable=False)

    # Relationships
    requisition = relationship("Requisition", back_populates="items")
    product = relationship("Product")

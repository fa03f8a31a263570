from sqlalchemy import Column, Integer, Float, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class OrderItem(BaseModel):
    __tablename__ = 'order_items'

    order_id = Column(Integer, ForeignKey('orders.id', ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete="CASCADE"), nullable=False, index=True)
    qty_requested = Column(Float, nullable=False)
    qty_final = Column(Float, nullable=False)  # Starts equal to qty_requested; adjusted on reconciliation
    note = Column(Text)

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product")

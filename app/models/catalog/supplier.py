from sqlalchemy import Column, String, Boolean, Text
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class Supplier(BaseModel):
    __tablename__ = 'suppliers'

    name = Column(String(200), unique=True, nullable=False)
    contact_note = Column(Text)
    active = Column(Boolean, default=True, nullable=False)

    # Relationships
    product_links = relationship("ProductSupplier", back_populates="supplier", passive_deletes=True)
    orders = relationship("Order", back_populates="supplier", passive_deletes=True)

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class Product(BaseModel):
    __tablename__ = 'products'

    name = Column(String(200), unique=True, nullable=False)
    unit = Column(String(50), nullable=False)
    category = Column(String(100), nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    # Relationships
    # Ranked supplier list: the lowest sort_order is the primary supplier
    supplier_links = relationship(
        "ProductSupplier",
        back_populates="product",
        order_by="ProductSupplier.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

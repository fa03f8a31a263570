from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class ProductSupplier(BaseModel):
    __tablename__ = 'product_suppliers'
    __table_args__ = (
        UniqueConstraint("product_id", "supplier_id", name="uq_product_suppliers_pair"),
    )

    product_id = Column(Integer, ForeignKey('products.id', ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id', ondelete="CASCADE"), nullable=False, index=True)
    sort_order = Column(Integer, nullable=False, default=1)

    # Relationships
    product = relationship("Product", back_populates="supplier_links")
    supplier = relationship("Supplier", back_populates="product_links", lazy="selectin")

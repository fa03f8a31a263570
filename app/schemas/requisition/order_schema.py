import math
from typing import List, Optional
from pydantic import BaseModel, validator
from app.models.shared.enums import OrderStatus
from app.schemas.catalog.supplier_schema import SupplierRef


class OrderItemDetail(BaseModel):
    order_item_id: int
    product_id: int
    product_name: str
    unit: str
    qty_requested: float
    qty_final: float
    note: Optional[str] = None
    alternatives: List[SupplierRef] = []

class OrderDetail(BaseModel):
    order_id: int
    status: OrderStatus
    supplier: SupplierRef
    items: List[OrderItemDetail] = []

class ActiveOrderItem(BaseModel):
    product_id: int
    name: str
    unit: str
    qty: float

class ActiveOrderGroup(BaseModel):
    supplier_id: int
    supplier_name: str
    items: List[ActiveOrderItem] = []

class MarkDeliveredResponse(BaseModel):
    supplier_id: int
    updated_orders: int

class OrderItemAdjust(BaseModel):
    qty_final: Optional[float] = None
    note: Optional[str] = None

    @validator('qty_final')
    def validate_qty_final(cls, v):
        if v is None:
            return v
        if not math.isfinite(v) or v < 0:
            raise ValueError('Final quantity must be a finite number >= 0')
        return v

class OrderItemResponse(BaseModel):
    id: int
    order_id: int
    product_id: int
    qty_requested: float
    qty_final: float
    note: Optional[str] = None

    class Config:
        from_attributes = True

import math
from typing import List
from pydantic import BaseModel, validator
from datetime import datetime
from app.models.shared.enums import RequisitionStatus
from app.schemas.requisition.order_schema import OrderDetail


class RequisitionItemCreate(BaseModel):
    product_id: int
    qty: float

    @validator('qty')
    def validate_qty(cls, v):
        if not math.isfinite(v) or v <= 0:
            raise ValueError('Quantity must be a finite number greater than 0')
        return v

class RequisitionCreate(BaseModel):
    items: List[RequisitionItemCreate]

    @validator('items')
    def validate_items(cls, v):
        if not v:
            raise ValueError('At least one item is required')
        return v

class RequisitionCreated(BaseModel):
    requisition_id: int
    order_count: int

class RequisitionSummary(BaseModel):
    id: int
    user_id: str
    status: RequisitionStatus
    created_at: datetime
    order_count: int = 0

class RequisitionDetail(BaseModel):
    id: int
    user_id: str
    status: RequisitionStatus
    created_at: datetime
    orders: List[OrderDetail] = []

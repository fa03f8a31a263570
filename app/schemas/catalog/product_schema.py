from typing import Optional
from pydantic import BaseModel, validator
from datetime import datetime
from app.schemas.catalog.supplier_schema import clean_name


class ProductBase(BaseModel):
    name: str
    unit: str
    category: Optional[str] = None  # Blank falls back to the configured default category
    active: bool = True

    @validator('name')
    def validate_name(cls, v):
        return clean_name(v, "Product name")

    @validator('unit')
    def validate_unit(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError('Unit is required')
        return v

    @validator('category')
    def normalize_category(cls, v):
        if v is None:
            return v
        return v.strip() or None

class ProductCreate(ProductBase):
    supplier_id: Optional[int] = None  # Attached as primary supplier when given

class ProductUpdate(BaseModel):
    name: Optional[str] = None
    unit: Optional[str] = None
    category: Optional[str] = None
    active: Optional[bool] = None

    @validator('name')
    def validate_name(cls, v):
        if v is None:
            return v
        return clean_name(v, "Product name")

    @validator('unit')
    def validate_unit(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Unit cannot be blank')
        return v

    @validator('category')
    def normalize_category(cls, v):
        if v is None:
            return v
        return v.strip()

class ProductResponse(BaseModel):
    id: int
    name: str
    unit: str
    category: str
    active: bool
    supplier_id: Optional[int] = None  # Primary supplier
    supplier_name: Optional[str] = None
    supplier_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

class StaffProductResponse(BaseModel):
    id: int
    name: str
    unit: str
    category: str
    supplier_id: int
    supplier_name: str
    on_order: bool = False

from typing import Optional
from pydantic import BaseModel, validator
from datetime import datetime

MIN_NAME_LENGTH = 2


def clean_name(value: str, label: str = "Name") -> str:
    value = (value or "").strip()
    if len(value) < MIN_NAME_LENGTH:
        raise ValueError(f"{label} must be at least {MIN_NAME_LENGTH} characters")
    return value


class SupplierBase(BaseModel):
    name: str
    contact_note: Optional[str] = None
    active: bool = True

    @validator('name')
    def validate_name(cls, v):
        return clean_name(v, "Supplier name")

class SupplierCreate(SupplierBase):
    pass

class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    contact_note: Optional[str] = None
    active: Optional[bool] = None

    @validator('name')
    def validate_name(cls, v):
        if v is None:
            return v
        return clean_name(v, "Supplier name")

class SupplierResponse(SupplierBase):
    id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SupplierRef(BaseModel):
    id: int
    name: str
    active: bool = True

from pydantic import BaseModel


class ProductSupplierAttach(BaseModel):
    supplier_id: int

class ProductSupplierResponse(BaseModel):
    supplier_id: int
    name: str
    sort_order: int
    active: bool
    is_primary: bool = False

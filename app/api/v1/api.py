from fastapi import APIRouter
from app.api.v1.endpoints.auth import me
from app.api.v1.endpoints.admin import order_items, products as admin_products, requisitions as admin_requisitions, suppliers
from app.api.v1.endpoints.staff import orders, products, requisitions

api_router = APIRouter()

# Principal
api_router.include_router(me.router, prefix="/me", tags=["Authentication"])

# Staff routes
api_router.include_router(products.router, prefix="/products", tags=["Staff"])
api_router.include_router(requisitions.router, prefix="/requisitions", tags=["Staff"])
api_router.include_router(orders.router, prefix="/my-orders", tags=["Staff"])

# Admin routes
api_router.include_router(suppliers.router, prefix="/admin/suppliers", tags=["Admin"])
api_router.include_router(admin_products.router, prefix="/admin/products", tags=["Admin"])
api_router.include_router(admin_requisitions.router, prefix="/admin/requisitions", tags=["Admin"])
api_router.include_router(order_items.router, prefix="/admin/order-items", tags=["Admin"])

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import require_admin
from app.models.catalog.product_supplier import ProductSupplier
from app.schemas.auth.principal import Principal
from app.schemas.catalog.product_schema import ProductCreate, ProductUpdate, ProductResponse
from app.schemas.catalog.product_supplier_schema import ProductSupplierAttach, ProductSupplierResponse
from app.services.catalog.product_service import ProductService
from app.services.catalog.supplier_resolver import SupplierResolver

router = APIRouter()
logger = logging.getLogger(__name__)


def _ranking_response(links: List[ProductSupplier]) -> List[ProductSupplierResponse]:
    return [
        ProductSupplierResponse(
            supplier_id=link.supplier_id,
            name=link.supplier.name,
            sort_order=link.sort_order,
            active=link.supplier.active,
            is_primary=position == 0,
        )
        for position, link in enumerate(links)
    ]

@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Create a product, optionally with its primary supplier"""
    try:
        product_service = ProductService(session)
        product = await product_service.create_product(product_data, principal.id)
        return ProductService.to_response(product)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating product: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create product"
        )

@router.get("", response_model=List[ProductResponse])
async def get_products(
    is_active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """All products with their primary supplier, active first"""
    try:
        product_service = ProductService(session)
        products = await product_service.get_products(is_active=is_active)
        return [ProductService.to_response(product) for product in products]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting products: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get products"
        )

@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    try:
        product_service = ProductService(session)
        product = await product_service.update_product(product_id, product_data, principal.id)
        return ProductService.to_response(product)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating product {product_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update product"
        )

@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    try:
        product_service = ProductService(session)
        await product_service.delete_product(product_id, principal.id)
        return {"message": "Product deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting product {product_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete product"
        )

# Supplier ranking

@router.get("/{product_id}/suppliers", response_model=List[ProductSupplierResponse])
async def list_product_suppliers(
    product_id: int,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Linked suppliers, primary first"""
    resolver = SupplierResolver(session)
    links = await resolver.list_suppliers(product_id)
    return _ranking_response(links)

@router.post("/{product_id}/suppliers", response_model=List[ProductSupplierResponse])
async def attach_supplier(
    product_id: int,
    attach_data: ProductSupplierAttach,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Append a supplier as the lowest ranked alternative"""
    resolver = SupplierResolver(session)
    links = await resolver.attach(product_id, attach_data.supplier_id, principal.id)
    return _ranking_response(links)

@router.delete("/{product_id}/suppliers/{supplier_id}", response_model=List[ProductSupplierResponse])
async def detach_supplier(
    product_id: int,
    supplier_id: int,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    resolver = SupplierResolver(session)
    links = await resolver.detach(product_id, supplier_id, principal.id)
    return _ranking_response(links)

@router.post("/{product_id}/suppliers/{supplier_id}/primary", response_model=List[ProductSupplierResponse])
async def set_primary_supplier(
    product_id: int,
    supplier_id: int,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    resolver = SupplierResolver(session)
    links = await resolver.set_primary(product_id, supplier_id, principal.id)
    return _ranking_response(links)

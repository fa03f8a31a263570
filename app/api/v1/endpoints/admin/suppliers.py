import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import require_admin
from app.schemas.auth.principal import Principal
from app.schemas.catalog.supplier_schema import SupplierCreate, SupplierUpdate, SupplierResponse
from app.services.catalog.supplier_service import SupplierService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    supplier_data: SupplierCreate,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Create a new supplier"""
    try:
        supplier_service = SupplierService(session)
        return await supplier_service.create_supplier(supplier_data, principal.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating supplier: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create supplier"
        )

@router.get("", response_model=List[SupplierResponse])
async def get_suppliers(
    is_active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """All suppliers, active first"""
    try:
        supplier_service = SupplierService(session)
        return await supplier_service.get_suppliers(is_active=is_active)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting suppliers: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get suppliers"
        )

@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: int,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Get supplier by ID"""
    supplier_service = SupplierService(session)
    supplier = await supplier_service.get_supplier(supplier_id)
    if not supplier:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Supplier not found"
        )
    return supplier

@router.patch("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: int,
    supplier_data: SupplierUpdate,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Update name, contact note or active flag"""
    try:
        supplier_service = SupplierService(session)
        return await supplier_service.update_supplier(supplier_id, supplier_data, principal.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating supplier {supplier_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update supplier"
        )

@router.delete("/{supplier_id}")
async def delete_supplier(
    supplier_id: int,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Delete supplier together with its orders and exclusive products"""
    try:
        supplier_service = SupplierService(session)
        await supplier_service.delete_supplier(supplier_id, principal.id)
        return {"message": "Supplier deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting supplier {supplier_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete supplier"
        )

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import get_current_principal
from app.schemas.auth.principal import Principal
from app.schemas.catalog.product_schema import StaffProductResponse
from app.services.catalog.product_service import ProductService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("", response_model=List[StaffProductResponse])
async def get_orderable_products(
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(get_current_principal)
):
    """Active products that can be ordered, flagged when already on a pending order"""
    try:
        product_service = ProductService(session)
        return await product_service.list_staff_products(principal.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting products for principal {principal.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get products"
        )

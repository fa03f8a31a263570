import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import get_current_principal
from app.schemas.auth.principal import Principal
from app.schemas.requisition.order_schema import ActiveOrderGroup, MarkDeliveredResponse
from app.services.requisition.order_service import OrderService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("", response_model=List[ActiveOrderGroup])
async def get_active_orders(
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(get_current_principal)
):
    """Pending orders grouped by supplier"""
    try:
        order_service = OrderService(session)
        return await order_service.list_active_orders(principal.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting active orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get active orders"
        )

@router.post("/{supplier_id}/delivered", response_model=MarkDeliveredResponse)
async def mark_delivered(
    supplier_id: int,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(get_current_principal)
):
    """Mark every pending order of the supplier as delivered"""
    order_service = OrderService(session)
    updated = await order_service.mark_delivered(supplier_id, principal.id)
    return MarkDeliveredResponse(supplier_id=supplier_id, updated_orders=updated)

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import require_admin
from app.schemas.auth.principal import Principal
from app.schemas.requisition.order_schema import OrderItemAdjust, OrderItemResponse
from app.services.requisition.order_service import OrderService

router = APIRouter()

@router.patch("/{order_item_id}", response_model=OrderItemResponse)
async def adjust_order_item(
    order_item_id: int,
    adjust_data: OrderItemAdjust,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Reconcile the final quantity or note of an order line"""
    order_service = OrderService(session)
    return await order_service.adjust_order_item(order_item_id, adjust_data, principal.id)

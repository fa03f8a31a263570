from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import get_current_principal, get_notification_dispatcher
from app.schemas.auth.principal import Principal
from app.schemas.requisition.requisition_schema import RequisitionCreate, RequisitionCreated
from app.services.notification.notification_service import NotificationDispatcher
from app.services.requisition.requisition_service import RequisitionService

router = APIRouter()

@router.post("", response_model=RequisitionCreated, status_code=status.HTTP_201_CREATED)
async def submit_requisition(
    requisition_data: RequisitionCreate,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(get_current_principal),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    """Submit a requisition; it is split into one order per supplier"""
    requisition_service = RequisitionService(session, dispatcher=dispatcher)
    requisition = await requisition_service.submit_requisition(principal.id, requisition_data)
    return RequisitionCreated(requisition_id=requisition.id, order_count=requisition.order_count)

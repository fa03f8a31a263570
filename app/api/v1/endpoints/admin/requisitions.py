import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import require_admin
from app.schemas.auth.principal import Principal
from app.schemas.requisition.requisition_schema import RequisitionSummary, RequisitionDetail
from app.services.requisition.requisition_service import RequisitionService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("", response_model=List[RequisitionSummary])
async def get_requisitions(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Latest requisitions with their order counts"""
    try:
        requisition_service = RequisitionService(session)
        return await requisition_service.get_requisitions(limit=limit)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting requisitions: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get requisitions"
        )

@router.get("/{requisition_id}", response_model=RequisitionDetail)
async def get_requisition_detail(
    requisition_id: int,
    session: AsyncSession = Depends(get_async_session),
    principal: Principal = Depends(require_admin)
):
    """Orders of a requisition with items and alternative suppliers"""
    try:
        requisition_service = RequisitionService(session)
        return await requisition_service.get_requisition_detail(requisition_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting requisition {requisition_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get requisition"
        )

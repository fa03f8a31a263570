from fastapi import APIRouter, Depends
from app.api.dependencies import get_current_principal
from app.schemas.auth.principal import Principal

router = APIRouter()

@router.get("", response_model=Principal)
async def read_current_principal(principal: Principal = Depends(get_current_principal)):
    """Principal behind the bearer token"""
    return principal

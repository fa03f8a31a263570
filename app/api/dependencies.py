from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.auth.jwt_handler import decode_access_token
from app.core.exceptions import PermissionDeniedError
from app.models.shared.enums import PrincipalRole
from app.schemas.auth.principal import Principal
from app.services.notification.notification_service import NotificationDispatcher, enqueue_notification_delivery
import logging

security = HTTPBearer()
logger = logging.getLogger(__name__)


def _unauthorized(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Principal:
    """Principal carried by the bearer token"""
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized()

    principal_id = payload.get("sub")
    if not principal_id:
        raise _unauthorized()

    try:
        role = PrincipalRole(payload.get("role", PrincipalRole.STAFF.value))
    except ValueError:
        raise _unauthorized("Unknown principal role")

    principal = Principal(id=str(principal_id), role=role)
    request.state.principal = principal
    return principal


async def require_admin(
    principal: Principal = Depends(get_current_principal)
) -> Principal:
    """Admin-only operations"""
    if not principal.is_admin:
        logger.warning(f"Principal {principal.id} denied admin operation")
        raise PermissionDeniedError()
    return principal


def get_notification_dispatcher() -> NotificationDispatcher:
    """Post-commit hook used by requisition submission; overridden in tests"""
    return enqueue_notification_delivery

from typing import Optional
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from app.core.config import settings
from app.models.shared.enums import PrincipalRole


def create_access_token(
    principal_id: str,
    role: Optional[PrincipalRole] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Issue a bearer token; without an explicit role, ids listed in ADMIN_IDS get admin"""
    principal_id = str(principal_id)
    if role is None:
        role = PrincipalRole.ADMIN if principal_id in settings.ADMIN_IDS else PrincipalRole.STAFF

    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": principal_id,
        "role": PrincipalRole(role).value,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate access token"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    # Check token type
    if payload.get("type") != "access":
        return None

    return payload

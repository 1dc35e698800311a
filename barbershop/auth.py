import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .rate_limiter import get_client_ip
from .security_utils import InvalidTokenError, TokenExpiredError, decode_access_token, log_security_event

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _authenticate(request: Request, token: str, db: Session) -> User:
    client_ip = get_client_ip(request)

    try:
        payload = decode_access_token(token)
    except TokenExpiredError as e:
        logger.info(f"ℹ️ Expired access token from {client_ip}")
        raise HTTPException(
            status_code=401,
            detail={"message": "Access token expired", "code": "TOKEN_EXPIRED"},
            headers={"X-Token-Expired": "true"},
        ) from e
    except InvalidTokenError as e:
        log_security_event("auth_failure", ip_address=client_ip, details={"reason": str(e)})
        raise HTTPException(status_code=401, detail="Token inválido") from e

    user = db.query(User).filter(User.id == payload["userId"]).first()
    if not user or not user.is_active:
        log_security_event(
            "auth_failure",
            user_id=payload["userId"],
            ip_address=client_ip,
            details={"reason": "unknown or inactive user"},
        )
        raise HTTPException(status_code=401, detail="Usuario no encontrado o inactivo")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the Bearer access token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="No autenticado. Envíe un token Bearer en el header Authorization.",
        )
    return _authenticate(request, credentials.credentials, db)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.user_type != "admin":
        logger.warning(f"⚠️ User {user.email} attempted an admin-only operation")
        raise HTTPException(status_code=403, detail="Acceso restringido a administradores")
    return user


async def require_barber_or_admin(user: User = Depends(get_current_user)) -> User:
    if user.user_type not in ("barber", "admin"):
        logger.warning(f"⚠️ Client {user.email} attempted a staff-only operation")
        raise HTTPException(status_code=403, detail="Acceso restringido al personal")
    return user


def is_staff(user: User) -> bool:
    return user.user_type in ("barber", "admin")


def ensure_self_or_admin(user: User, target_user_id: str):
    if user.user_type != "admin" and user.id != target_user_id:
        raise HTTPException(status_code=403, detail="No tiene permiso para acceder a este usuario")


async def require_self_or_admin(user_id: str, user: User = Depends(get_current_user)) -> User:
    """For routes with a `user_id` path parameter"""
    ensure_self_or_admin(user, user_id)
    return user

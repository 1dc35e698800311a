"""
Security utilities: password hashing, JWT issuing/verification and input sanitization
"""

import hashlib
import logging
import re
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

# Input sanitization
import bleach
from jose import ExpiredSignatureError, JWTError, jwt

# Password hashing
from passlib.context import CryptContext

from . import config
from .security_monitor import security_monitor

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

PASSWORD_MIN_LENGTH = 10
PASSWORD_MAX_LENGTH = 128


class TokenExpiredError(Exception):
    """Raised when a JWT has a valid signature but is past its expiry"""


class InvalidTokenError(Exception):
    """Raised when a JWT cannot be decoded or carries the wrong claims"""


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


def password_problems(password: str) -> list[str]:
    """
    Return the list of unmet password rules (empty when the password is acceptable)

    Rules: 10 to 128 characters, at least one lowercase letter, one uppercase
    letter, one digit and one symbol.
    """
    problems = []

    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"La contraseña debe tener al menos {PASSWORD_MIN_LENGTH} caracteres")
    if len(password) > PASSWORD_MAX_LENGTH:
        problems.append(f"La contraseña no puede superar {PASSWORD_MAX_LENGTH} caracteres")
    if not re.search(r"[a-z]", password):
        problems.append("La contraseña debe contener una letra minúscula")
    if not re.search(r"[A-Z]", password):
        problems.append("La contraseña debe contener una letra mayúscula")
    if not re.search(r"\d", password):
        problems.append("La contraseña debe contener un número")
    if not re.search(r"[^A-Za-z0-9]", password):
        problems.append("La contraseña debe contener un símbolo")

    return problems


# ============================================================================
# TOKEN GENERATION & VALIDATION
# ============================================================================


def _encode(payload: dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    to_encode = payload.copy()
    now = datetime.utcnow()
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=config.JWT_ALGORITHM)


def _decode(token: str, secret: str, token_type: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, secret, algorithms=[config.JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        raise TokenExpiredError(f"{token_type} token expired") from e
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise InvalidTokenError(f"Invalid {token_type} token") from e

    if payload.get("type") != token_type or not payload.get("userId"):
        raise InvalidTokenError(f"Invalid {token_type} token")
    if payload.get("version") != config.TOKEN_VERSION:
        raise InvalidTokenError(f"Outdated {token_type} token")

    return payload


def create_access_token(user_id: str, user_type: str) -> str:
    """Short lived token sent as `Authorization: Bearer` on every request"""
    return _encode(
        {
            "userId": user_id,
            "userType": user_type,
            "version": config.TOKEN_VERSION,
            "type": "access",
        },
        config.JWT_ACCESS_SECRET,
        timedelta(minutes=config.JWT_ACCESS_EXPIRES_MINUTES),
    )


def create_refresh_token(user_id: str, user_type: str) -> tuple[str, datetime]:
    """
    Long lived token used only against /auth/refresh

    Returns:
        Tuple of (token, expires_at). The random jti keeps two tokens issued
        in the same second distinct.
    """
    expires_delta = timedelta(days=config.JWT_REFRESH_EXPIRES_DAYS)
    token = _encode(
        {
            "userId": user_id,
            "userType": user_type,
            "version": config.TOKEN_VERSION,
            "type": "refresh",
            "jti": secrets.token_urlsafe(16),
        },
        config.JWT_REFRESH_SECRET,
        expires_delta,
    )
    return token, datetime.utcnow() + expires_delta


def decode_access_token(token: str) -> dict[str, Any]:
    return _decode(token, config.JWT_ACCESS_SECRET, "access")


def decode_refresh_token(token: str) -> dict[str, Any]:
    return _decode(token, config.JWT_REFRESH_SECRET, "refresh")


def hash_token(token: str) -> str:
    """SHA-256 hex digest used to index stored refresh tokens"""
    return hashlib.sha256(token.encode()).hexdigest()


# ============================================================================
# INPUT SANITIZATION
# ============================================================================


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip every HTML tag and surrounding whitespace from free text input"""
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


# ============================================================================
# AUDIT LOGGING
# ============================================================================


def log_security_event(
    event_type: str,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
):
    """
    Log security-related events for audit trail

    Args:
        event_type: rate_limit, duplicate_request, validation_error or auth_failure
        user_id: User identifier
        ip_address: Client IP address
        details: Additional event details
    """
    log_entry = {
        "timestamp": datetime.utcnow().isoformat(),
        "event_type": event_type,
        "user_id": user_id,
        "ip_address": ip_address,
        "details": details or {},
    }

    logger.warning(f"SECURITY_EVENT: {log_entry}")
    security_monitor.record(event_type, ip_address=ip_address, user_id=user_id, details=details)

"""
Refresh token persistence and blacklisting

Refresh tokens are stored (as SHA-256 digests) so that logout, rotation and password changes can
revoke them before their natural expiry.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from .models import RefreshToken
from .security_utils import hash_token

logger = logging.getLogger(__name__)


def store_refresh_token(db: Session, user_id: str, token: str, expires_at: datetime) -> RefreshToken:
    record = RefreshToken(
        token_hash=hash_token(token),
        user_id=user_id,
        expires_at=expires_at,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def is_refresh_token_active(db: Session, token: str) -> bool:
    """True when the token is stored, not blacklisted and not expired"""
    record = db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(token)).first()
    if not record:
        return False
    if record.blacklisted:
        logger.warning(f"⚠️ Blacklisted refresh token presented for user {record.user_id}")
        return False
    return record.expires_at > datetime.utcnow()


def blacklist_token(db: Session, token: str) -> bool:
    record = db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(token)).first()
    if not record or record.blacklisted:
        return False

    record.blacklisted = True
    record.blacklisted_at = datetime.utcnow()
    db.commit()
    return True


def blacklist_all_user_tokens(db: Session, user_id: str) -> int:
    """Revoke every active refresh token of a user (password change/reset)"""
    now = datetime.utcnow()
    count = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.blacklisted.is_(False))
        .update({"blacklisted": True, "blacklisted_at": now}, synchronize_session=False)
    )
    db.commit()
    if count:
        logger.info(f"🔒 Blacklisted {count} refresh tokens for user {user_id}")
    return count


def cleanup_expired_tokens(db: Session) -> int:
    """Delete refresh tokens past their expiry"""
    count = (
        db.query(RefreshToken)
        .filter(RefreshToken.expires_at < datetime.utcnow())
        .delete(synchronize_session=False)
    )
    db.commit()
    if count:
        logger.info(f"🧹 Removed {count} expired refresh tokens")
    return count

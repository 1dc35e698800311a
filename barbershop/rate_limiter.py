"""
Hybrid in-memory + Redis rate limiting utilities

Counters live in memory and are synced to Redis periodically when a Redis
server is configured (REDIS_URL or REDIS_HOST). Without Redis the limiter
keeps working per process.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request

from . import config
from .security_utils import InvalidTokenError, TokenExpiredError, decode_access_token, log_security_event

logger = logging.getLogger(__name__)

# Redis connection
redis_client: Optional[redis.Redis] = None
_redis_initialized = False

# In-memory cache for rate limiting
# Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

# Configuration
MEMORY_CACHE_SYNC_INTERVAL = 10  # Sync to Redis every 10 seconds
MEMORY_CACHE_CLEANUP_INTERVAL = 60  # Clean up expired entries every 60 seconds
last_cleanup_time = 0


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get or create the Redis client, None when Redis is not configured or unreachable
    """
    global redis_client, _redis_initialized

    if _redis_initialized:
        return redis_client
    _redis_initialized = True

    redis_url = os.getenv("REDIS_URL")
    redis_host = os.getenv("REDIS_HOST")
    if not redis_url and not redis_host:
        logger.info("ℹ️ Redis not configured - rate limiting uses in-memory counters only")
        return None

    logger.info("🔄 Initializing Redis connection for rate limiting...")
    try:
        if redis_url:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        else:
            client = redis.Redis(
                host=redis_host,
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        client.ping()
        redis_client = client
        logger.info("✅ Redis connected for rate limiting")
    except Exception as e:
        logger.error(f"❌ Failed to connect to Redis: {str(e)}")
        logger.warning("⚠️ Rate limiting falls back to in-memory counters")
        redis_client = None

    return redis_client


def cleanup_expired_cache():
    """Remove expired entries from memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [k for k, v in memory_cache.items() if current_time >= v.get("reset_time", 0)]
        for k in expired_keys:
            del memory_cache[k]

        if expired_keys:
            logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

    last_cleanup_time = current_time


def reset_rate_limits():
    """Drop every in-memory counter"""
    with cache_lock:
        memory_cache.clear()


def _new_entry(current_time: int, window_seconds: int, client: Optional[redis.Redis], key: str) -> dict:
    if client is not None:
        try:
            redis_count = client.get(key)
            redis_ttl = client.ttl(key)
            if redis_count and redis_ttl > 0:
                return {
                    "count": int(redis_count),
                    "reset_time": current_time + redis_ttl,
                    "last_redis_sync": current_time,
                }
        except Exception as e:
            logger.warning(f"⚠️ Failed to load from Redis, using memory only: {e}")

    return {
        "count": 0,
        "reset_time": current_time + window_seconds,
        "last_redis_sync": current_time,
    }


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """Check if rate limit is exceeded using the in-memory counter, synced to Redis

    Args:
        key: Key for this rate limit
        limit: Maximum number of requests allowed
        window_seconds: Time window in seconds
        client: Redis client instance, None for memory only

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())

    cleanup_expired_cache()

    with cache_lock:
        if key not in memory_cache:
            memory_cache[key] = _new_entry(current_time, window_seconds, client, key)

        cache_entry = memory_cache[key]

        # Window expired
        if current_time >= cache_entry["reset_time"]:
            cache_entry["count"] = 0
            cache_entry["reset_time"] = current_time + window_seconds
            cache_entry["last_redis_sync"] = 0

        is_allowed = cache_entry["count"] < limit
        if is_allowed:
            cache_entry["count"] += 1

        ttl = max(0, cache_entry["reset_time"] - current_time)

        # Sync to Redis periodically (not on every request)
        if client is not None and current_time - cache_entry.get("last_redis_sync", 0) >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                client.set(key, cache_entry["count"], ex=max(1, ttl))
                cache_entry["last_redis_sync"] = current_time
                logger.debug(f"📡 Synced {key} to Redis: {cache_entry['count']}/{limit}")
            except Exception as e:
                logger.warning(f"⚠️ Failed to sync to Redis: {e}")

        return is_allowed, cache_entry["count"], ttl


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _user_id_from_request(request: Request) -> Optional[str]:
    """Best-effort user id from the Bearer token, without touching the database"""
    authorization = request.headers.get("Authorization", "")
    if not authorization.lower().startswith("bearer "):
        return None
    try:
        return decode_access_token(authorization[7:].strip()).get("userId")
    except (InvalidTokenError, TokenExpiredError):
        return None


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    per_user: bool = False,
    message: Optional[str] = None,
):
    """
    FastAPI dependency for rate limiting

    Args:
        request: FastAPI request object
        limit: Maximum requests allowed
        window_seconds: Time window in seconds
        key_prefix: Prefix for the counter key
        per_user: Key on the authenticated user id when present, IP otherwise
        message: Error message returned when the limit is exceeded
    """
    if not config.RATE_LIMIT_ENABLED:
        return

    client_ip = get_client_ip(request)
    user_id = _user_id_from_request(request) if per_user else None
    key = f"{key_prefix}:user:{user_id}" if user_id else f"{key_prefix}:{client_ip}"

    is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, get_redis_client())

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
        log_security_event(
            "rate_limit",
            user_id=user_id,
            ip_address=client_ip,
            details={"limiter": key_prefix, "path": request.url.path, "limit": limit},
        )
        raise HTTPException(
            status_code=429,
            detail={
                "message": message or f"Demasiadas solicitudes. Máximo {limit} cada {window_seconds} segundos.",
                "retryAfter": ttl,
                "limit": limit,
                "windowSeconds": window_seconds,
            },
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count
    request.state.rate_limit_limit = limit
    request.state.rate_limit_reset = int(time.time()) + ttl


def create_rate_limiter(
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    per_user: bool = False,
    message: Optional[str] = None,
):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        sensitive_limiter = create_rate_limiter(limit=3, window_seconds=3600, key_prefix="sensitive")

        @router.post("/password/reset")
        async def reset_password(data: ResetPasswordRequest, _: None = Depends(sensitive_limiter)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, per_user, message)

    return rate_limiter


# Named limiters shared by the routers
general_limiter = create_rate_limiter(100, 15 * 60, "general")
auth_limiter = create_rate_limiter(
    5, 15 * 60, "auth", message="Demasiados intentos de inicio de sesión. Intente nuevamente más tarde."
)
modification_limiter = create_rate_limiter(20, 5 * 60, "modification")
sensitive_limiter = create_rate_limiter(
    3, 60 * 60, "sensitive", message="Demasiados intentos para una operación sensible. Intente en una hora."
)
user_limiter = create_rate_limiter(300, 15 * 60, "user", per_user=True)
user_modification_limiter = create_rate_limiter(60, 5 * 60, "user_modification", per_user=True)

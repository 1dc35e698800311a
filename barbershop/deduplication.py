"""
Duplicate request protection for write endpoints

An identical POST/PUT/PATCH (same client IP, method, path and body) repeated
inside the window is rejected with 429.
"""

import hashlib
import logging
import time
from threading import Lock

from fastapi import HTTPException, Request

from . import config
from .rate_limiter import get_client_ip
from .security_utils import log_security_event

logger = logging.getLogger(__name__)

DEDUPLICATED_METHODS = ("POST", "PUT", "PATCH")
CACHE_RETENTION_SECONDS = 10  # Longer than the widest window

# {request_hash: monotonic timestamp}
request_cache: dict[str, float] = {}
request_cache_lock = Lock()
last_cleanup_time = 0.0


def _cleanup(now: float):
    global last_cleanup_time
    if now - last_cleanup_time < CACHE_RETENTION_SECONDS:
        return
    expired = [h for h, ts in request_cache.items() if now - ts > CACHE_RETENTION_SECONDS]
    for h in expired:
        del request_cache[h]
    last_cleanup_time = now


def reset_request_cache():
    with request_cache_lock:
        request_cache.clear()


def request_hash(ip: str, method: str, path: str, body: bytes) -> str:
    digest = hashlib.sha256()
    digest.update(f"{ip}:{method}:{path}:".encode())
    digest.update(body)
    return digest.hexdigest()


def check_duplicate(key: str, window_seconds: float) -> float:
    """
    Register a request hash

    Returns:
        0 when the request is new, otherwise the seconds left in the window
    """
    now = time.monotonic()
    with request_cache_lock:
        _cleanup(now)
        previous = request_cache.get(key)
        if previous is not None and now - previous < window_seconds:
            return window_seconds - (now - previous)
        request_cache[key] = now
    return 0


def create_deduplicator(window_seconds: float):
    async def deduplicate(request: Request):
        if not config.DEDUPLICATION_ENABLED or request.method not in DEDUPLICATED_METHODS:
            return

        client_ip = get_client_ip(request)
        body = await request.body()
        remaining = check_duplicate(request_hash(client_ip, request.method, request.url.path, body), window_seconds)

        if remaining:
            retry_after = max(1, int(remaining + 0.999))
            logger.warning(f"⚠️ Duplicate request from {client_ip} on {request.url.path}")
            log_security_event(
                "duplicate_request",
                ip_address=client_ip,
                details={"path": request.url.path, "method": request.method},
            )
            raise HTTPException(
                status_code=429,
                detail={
                    "message": "Solicitud duplicada detectada. Por favor, espere antes de intentar nuevamente.",
                    "retryAfter": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

    return deduplicate


strict_deduplication = create_deduplicator(5)
standard_deduplication = create_deduplicator(3)
lenient_deduplication = create_deduplicator(1)

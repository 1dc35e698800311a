"""
In-process ring buffer of recent security events (rate limits, duplicate
requests, validation errors, authentication failures)
"""

import logging
from collections import Counter, deque
from datetime import datetime
from threading import Lock
from typing import Any, Optional

logger = logging.getLogger(__name__)

EVENT_TYPES = ("rate_limit", "duplicate_request", "validation_error", "auth_failure")
MAX_EVENTS = 100


class SecurityMonitor:
    def __init__(self, max_events: int = MAX_EVENTS):
        self._events: deque = deque(maxlen=max_events)
        self._lock = Lock()

    def record(
        self,
        event_type: str,
        ip_address: Optional[str] = None,
        user_id: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        if event_type not in EVENT_TYPES:
            logger.debug(f"Unknown security event type recorded: {event_type}")

        event = {
            "type": event_type,
            "timestamp": datetime.utcnow().isoformat(),
            "ip": ip_address,
            "userId": user_id,
            "path": path,
            "details": details or {},
        }
        with self._lock:
            self._events.append(event)
        return event

    def recent(self, limit: Optional[int] = None, event_type: Optional[str] = None) -> list[dict[str, Any]]:
        """Newest first, optionally filtered by type"""
        with self._lock:
            events = list(self._events)
        events.reverse()
        if event_type:
            events = [e for e in events if e["type"] == event_type]
        if limit is not None:
            events = events[:limit]
        return events

    def stats(self) -> dict[str, Any]:
        with self._lock:
            counts = Counter(e["type"] for e in self._events)
            total = len(self._events)
        return {"total": total, "byType": {t: counts.get(t, 0) for t in EVENT_TYPES}}

    def clear(self):
        with self._lock:
            self._events.clear()


security_monitor = SecurityMonitor()

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

logger = logging.getLogger(__name__)


class TTLCache:
    """
    Simple in-process cache of values with a fixed time-to-live.

    Keys:
      - dashboard:{tenant_id}
    Entries are dropped lazily when read after expiry.
    """

    def __init__(self, ttl_seconds: float) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = asyncio.Lock()

    # PUBLIC_INTERFACE
    def dashboard_key(self, tenant_id: UUID | str) -> str:
        """Return the dashboard cache key for a tenant."""
        return f"dashboard:{tenant_id}"

    # PUBLIC_INTERFACE
    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None when absent or expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires, value = entry
            if expires <= time.monotonic():
                del self._entries[key]
                return None
            return value

    # PUBLIC_INTERFACE
    async def set(self, key: str, value: Any) -> None:
        """Store value for ttl_seconds."""
        async with self._lock:
            self._entries[key] = (time.monotonic() + self.ttl_seconds, value)

    # PUBLIC_INTERFACE
    async def invalidate(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    # PUBLIC_INTERFACE
    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

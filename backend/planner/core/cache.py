"""
Injectable TTL cache for group overview payloads.

One instance is created per application (``app.state.group_cache``) and
handed to route handlers through ``planner.api.dependencies.get_group_cache``.
"""
import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class GroupCache:
    """Maps (group_id, key) to a payload that expires ``ttl_seconds`` after it was stored."""

    def __init__(self, ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[int, Hashable], Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, group_id: int, key: Hashable = None) -> Optional[Any]:
        """Return the cached payload, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get((group_id, key))
            if entry is None:
                return None
            stored_at, payload = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[(group_id, key)]
                return None
            return payload

    def set(self, group_id: int, payload: Any, key: Hashable = None) -> None:
        with self._lock:
            self._entries[(group_id, key)] = (self._clock(), payload)

    def invalidate(self, group_id: int) -> int:
        """Drop every entry of a group. Returns the number of entries removed."""
        with self._lock:
            stale = [k for k in self._entries if k[0] == group_id]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug("Invalidated %d cached entries for group %s", len(stale), group_id)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

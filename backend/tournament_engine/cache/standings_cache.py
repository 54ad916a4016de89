"""
Cache collaborator for computed standings.

Entries are time-expiring snapshots. Nothing is invalidated automatically:
whoever changes the completed-game set of a scope must call invalidate()
for that scope's key.
"""

import copy
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple


def team_stats_key(team_name: str, division_id: str) -> str:
    return f"team-stats:{team_name}:{division_id}"


def division_standings_key(division_id: str) -> str:
    return f"division-standings:{division_id}"


def pool_standings_key(pool_id: int) -> str:
    return f"pool-standings:{pool_id}"


class StandingsCache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl_seconds: float) -> None: ...

    def invalidate(self, key: str) -> None: ...


class TTLMemoryCache:
    """Process-local cache; values are deep-copied in and out."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, copy.deepcopy(value))

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class NullCache:
    """Caching disabled: every read misses."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        pass

    def invalidate(self, key: str) -> None:
        pass

# backend/utils/read_cache.py
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from config import settings

logger = logging.getLogger(__name__)


def make_key(endpoint: str, options: Optional[Dict[str, Any]] = None) -> str:
    # Sorted JSON keeps semantically equal requests on one key
    return f"{endpoint}|{json.dumps(options or {}, sort_keys=True, separators=(',', ':'), default=str)}"


@dataclass
class _Entry:
    value: Any
    stored_at: float


class ReadThroughCache:
    """
    In-memory TTL cache for catalog reads.

    Not authoritative: expired entries are reloaded, and kept only as a
    fallback when the reload fails.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = settings.READ_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self.hits = 0
        self.misses = 0
        self.stale_served = 0

    def _fresh(self, entry: _Entry) -> bool:
        return self._clock() - entry.stored_at < self.ttl

    async def get(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        entry = self._entries.get(key)
        if entry is not None and self._fresh(entry):
            self.hits += 1
            return entry.value

        self.misses += 1
        try:
            value = await loader()
        except Exception as e:
            if entry is not None:
                self.stale_served += 1
                logger.warning(f"Serving stale cache for {key}: {e}")
                return entry.value
            raise

        self._entries[key] = _Entry(value=value, stored_at=self._clock())
        return value

    def invalidate(self, prefix: str = "") -> int:
        keys = [k for k in self._entries if k.startswith(prefix)]
        for k in keys:
            del self._entries[k]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> Dict[str, int]:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "stale_served": self.stale_served,
        }


read_cache = ReadThroughCache()

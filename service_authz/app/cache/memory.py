"""
In-process cache backend.

Used for local development and tests, and by deployments that run a single
service process. Values are stored in the same JSON envelope as Redis, so
readers always get a fresh copy.
"""

import time
from typing import Any, Dict, Optional, Tuple

from shared.logging import get_logger
from .dependency import FileDependency, encode_entry, decode_entry


class MemoryCache:
    """Dictionary-backed cache with TTLs and file dependencies."""

    def __init__(self):
        self.logger = get_logger("authz.cache.memory")
        self._entries: Dict[str, Tuple[Optional[float], str]] = {}

    async def start(self):
        self.logger.info("Memory cache started")

    async def stop(self):
        self._entries.clear()

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, raw = entry
        if expires_at is not None and expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None

        try:
            value, dependency = decode_entry(raw)
        except ValueError as e:
            self.logger.warning("Discarding corrupt cache entry", cache_key=key, error=str(e))
            self._entries.pop(key, None)
            return None

        if dependency is not None and dependency.has_changed():
            self._entries.pop(key, None)
            return None

        return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        dependency: Optional[FileDependency] = None
    ) -> bool:
        expires_at = time.monotonic() + ttl if ttl else None
        self._entries[key] = (expires_at, encode_entry(value, dependency))
        return True

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._entries)

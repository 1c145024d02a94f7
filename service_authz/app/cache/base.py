"""
Cache backend surface consumed by the authorization core.
"""

from typing import Any, Optional, Protocol

from .dependency import FileDependency


class CacheBackend(Protocol):
    """Key-value cache with TTLs and optional invalidation dependencies."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        dependency: Optional[FileDependency] = None
    ) -> bool:
        ...

    async def delete(self, key: str) -> bool:
        ...

"""
Hierarchy file loading and caching.
"""

import asyncio
import os
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional

import yaml
from shared.logging import get_logger
from shared.errors import HierarchyError
from ..cache.base import CacheBackend
from ..cache.dependency import FileDependency
from .models import HierarchySnapshot

_loading_hierarchy: ContextVar[bool] = ContextVar("authz_loading_hierarchy", default=False)


@contextmanager
def loading_hierarchy() -> Iterator[None]:
    """Mark the current task as loading the hierarchy.

    While set, bulk assignment clears are suppressed: reloading the hierarchy
    must never wipe the assignment store. The flag lives in a context
    variable, so concurrent loads in other tasks neither see nor reset it.
    """
    token = _loading_hierarchy.set(True)
    try:
        yield
    finally:
        _loading_hierarchy.reset(token)


def is_loading_hierarchy() -> bool:
    return _loading_hierarchy.get()


class HierarchyStore:
    """Loads the hierarchy file into an immutable snapshot.

    Parsed file content is cached in the backend for ``duration`` seconds
    (``0`` disables it) together with a dependency on the file, so an edit
    to the file is picked up on the next load even before the TTL expires.
    """

    CACHE_KEY_PREFIX = "__authfile_"

    def __init__(
        self,
        path: str,
        backend: Optional[CacheBackend] = None,
        duration: int = 3600,
        application_id: str = "authz",
    ):
        self.path = path
        self.backend = backend
        self.duration = duration
        self.application_id = application_id
        self.logger = get_logger("authz.hierarchy.loader")
        self._snapshot: Optional[HierarchySnapshot] = None

    @property
    def cache_key(self) -> str:
        return f"{self.CACHE_KEY_PREFIX}{self.application_id}"

    @property
    def uses_cache(self) -> bool:
        return self.backend is not None and self.duration != 0

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    async def get_snapshot(self) -> HierarchySnapshot:
        """Return the current snapshot, loading it on first use."""
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = await self.load()
        return snapshot

    async def load(self) -> HierarchySnapshot:
        """Load a fresh snapshot from the cache or the file.

        The file is read and parsed in a worker thread.
        """
        snapshot = await self._load_cached()
        if snapshot is None:
            snapshot = HierarchySnapshot.from_content(await asyncio.to_thread(self._read_file))
            if self.uses_cache:
                await self.backend.set(
                    self.cache_key,
                    snapshot.to_content(),
                    self.duration,
                    FileDependency.for_file(self.path)
                )

        self._snapshot = snapshot
        self.logger.info("Hierarchy loaded", path=self.path, items=len(snapshot))
        return snapshot

    def reset(self) -> None:
        """Forget the in-memory snapshot; the next read reloads it."""
        self._snapshot = None

    async def invalidate(self) -> None:
        """Forget the in-memory snapshot and the cached file content."""
        self.reset()
        if self.backend is not None:
            await self.backend.delete(self.cache_key)

    async def _load_cached(self) -> Optional[HierarchySnapshot]:
        if not self.uses_cache:
            return None

        content = await self.backend.get(self.cache_key)
        if content is None:
            return None

        try:
            return HierarchySnapshot.from_content(content)
        except HierarchyError as e:
            self.logger.warning("Discarding corrupt cached hierarchy", error=e.message)
            await self.backend.delete(self.cache_key)
            return None

    def _read_file(self) -> Any:
        if not os.path.isfile(self.path):
            self.logger.warning("Hierarchy file not found, using an empty hierarchy", path=self.path)
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise HierarchyError("Hierarchy file is not valid YAML", {"path": self.path, "error": str(e)}) from e

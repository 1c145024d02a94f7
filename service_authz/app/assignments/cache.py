"""
Per-user assignment sets with a request memo and an optional cache backend.
"""

from typing import Any, Dict, Optional, Tuple, Union

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..cache.base import CacheBackend
from ..persistence.base import AssignmentStore
from .models import Assignment, UserId, normalize_user_id

CacheDuration = Union[int, bool]


class AssignmentCache:
    """Reads a user's complete assignment set through two cache tiers.

    ``duration`` selects the mode:

    - ``False``: no caching; every read goes to the store.
    - ``0``: the set is memoised for the lifetime of this instance only.
    - ``> 0``: memoised, and also written to the backend with that TTL.
      ``True`` writes to the backend without expiry.

    A cached set is always complete. Invalidation removes the whole entry, so
    the next read is a fresh store read.

    A read that overlaps a flush of the same user on this instance returns
    its rows but does not cache them. Flushes issued by other instances are
    not seen, so such a read may still store an older set that stays until
    its TTL expires or the next flush for the user.
    """

    KEY_PREFIX = "__authassignments__"

    def __init__(
        self,
        store: AssignmentStore,
        backend: Optional[CacheBackend] = None,
        duration: CacheDuration = 0,
        application_id: str = "authz",
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.backend = backend
        self.duration = duration
        self.application_id = application_id
        self.metrics = metrics
        self.logger = get_logger("authz.assignments.cache")
        self._memo: Dict[str, Dict[str, Assignment]] = {}
        self._flushes: Dict[str, int] = {}
        self._epoch = 0

    @property
    def enabled(self) -> bool:
        return self.duration is not False

    @property
    def ttl(self) -> Optional[int]:
        """Backend TTL, or ``None`` when sets are not written to the backend."""
        if not self.enabled or self.duration is True:
            return None
        return self.duration if self.duration > 0 else None

    @property
    def writes_backend(self) -> bool:
        return self.backend is not None and self.enabled and (self.duration is True or self.duration > 0)

    def cache_key(self, user_id: UserId) -> str:
        """Cache key for one user's set, namespaced by application instance."""
        return f"{self.KEY_PREFIX}{normalize_user_id(user_id)}_{self.application_id}"

    async def get_assignments(self, user_id: UserId) -> Dict[str, Assignment]:
        """Return the user's assignments indexed by item name."""
        user_id = normalize_user_id(user_id)

        if self.enabled:
            memoised = self._memo.get(user_id)
            if memoised is not None:
                self._record("memo")
                return dict(memoised)

            if self.backend is not None:
                cached = await self.backend.get(self.cache_key(user_id))
                assignments = self._decode(user_id, cached) if cached is not None else None
                if assignments is not None:
                    self._record("hit")
                    self._memo[user_id] = assignments
                    return dict(assignments)

            self._record("miss")
        else:
            self._record("disabled")

        generation = self._generation(user_id)
        rows = await self.store.select_all_for_user(user_id)
        assignments = {assignment.item_name: assignment for assignment in rows}

        if self.enabled and self._generation(user_id) == generation:
            self._memo[user_id] = assignments
            if self.writes_backend:
                await self.backend.set(
                    self.cache_key(user_id),
                    {name: assignment.to_dict() for name, assignment in assignments.items()},
                    self.ttl
                )

        return dict(assignments)

    async def flush(self, user_id: UserId) -> None:
        """Drop the memo and backend entry of one user."""
        if not self.enabled:
            return

        user_id = normalize_user_id(user_id)
        self._flushes[user_id] = self._flushes.get(user_id, 0) + 1
        self._memo.pop(user_id, None)
        if self.backend is not None:
            await self.backend.delete(self.cache_key(user_id))

        self.logger.debug("Assignment cache flushed", user_id=user_id)

    def clear_memo(self) -> None:
        """Drop every memoised set held by this instance."""
        self._memo.clear()
        self._flushes.clear()
        self._epoch += 1

    def _generation(self, user_id: str) -> Tuple[int, int]:
        return self._epoch, self._flushes.get(user_id, 0)

    def _decode(self, user_id: str, cached: Any) -> Optional[Dict[str, Assignment]]:
        try:
            return {
                name: Assignment.from_dict(record)
                for name, record in cached.items()
            }
        except (AttributeError, KeyError, TypeError) as e:
            self.logger.warning("Discarding corrupt cached assignments", user_id=user_id, error=str(e))
            return None

    def _record(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("authz_assignment_cache_total", outcome=outcome)

"""
Assignment mutations and cache invalidation.
"""

from typing import Any, Dict, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.errors import AssignmentNotFoundError, UnknownItemError
from ..hierarchy.loader import HierarchyStore, is_loading_hierarchy
from ..persistence.base import AssignmentStore
from ..rules.models import BusinessRule
from .cache import AssignmentCache
from .models import Assignment, UserId, normalize_user_id


class AssignmentManager:
    """Creates, updates and removes assignments.

    Each successful mutation for a user removes that user's cached assignment
    set (memo and backend entry) right after the store write. The two writes
    are not atomic: a crash in between leaves a stale backend entry until its
    TTL expires.
    """

    def __init__(
        self,
        hierarchy: HierarchyStore,
        store: AssignmentStore,
        cache: AssignmentCache,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.hierarchy = hierarchy
        self.store = store
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("authz.assignments.manager")

    async def assign(
        self,
        item_name: str,
        user_id: UserId,
        business_rule: Optional[BusinessRule] = None,
        data: Any = None
    ) -> Assignment:
        """Assign an item to a user.

        Raises ``UnknownItemError`` for items outside the hierarchy and
        ``DuplicateAssignmentError`` when the pair already exists.
        """
        user_id = normalize_user_id(user_id)
        snapshot = await self.hierarchy.get_snapshot()
        if item_name not in snapshot:
            raise UnknownItemError(item_name)

        await self.store.insert(item_name, user_id, business_rule, data)
        await self.cache.flush(user_id)

        self._record("assign")
        self.logger.info("Item assigned", item_name=item_name, user_id=user_id)
        return Assignment(item_name=item_name, user_id=user_id, business_rule=business_rule, data=data)

    async def revoke(self, item_name: str, user_id: UserId) -> bool:
        """Revoke an assignment; returns whether one existed."""
        user_id = normalize_user_id(user_id)
        removed = await self.store.delete(item_name, user_id) > 0

        if removed:
            await self.cache.flush(user_id)
            self._record("revoke")
            self.logger.info("Assignment revoked", item_name=item_name, user_id=user_id)

        return removed

    async def save_assignment(self, assignment: Assignment) -> None:
        """Persist a changed business rule or data of an existing assignment."""
        user_id = normalize_user_id(assignment.user_id)
        updated = await self.store.update(
            assignment.item_name,
            user_id,
            assignment.business_rule,
            assignment.data
        )
        if not updated:
            raise AssignmentNotFoundError(assignment.item_name, user_id)

        await self.cache.flush(user_id)
        self._record("save")
        self.logger.info("Assignment saved", item_name=assignment.item_name, user_id=user_id)

    async def get_assignment(self, item_name: str, user_id: UserId) -> Optional[Assignment]:
        return await self.store.select_one(item_name, normalize_user_id(user_id))

    async def get_assignments(self, user_id: UserId) -> Dict[str, Assignment]:
        return await self.cache.get_assignments(user_id)

    async def is_assigned(self, item_name: str, user_id: UserId) -> bool:
        return await self.get_assignment(item_name, user_id) is not None

    async def clear_all_assignments(self) -> bool:
        """Delete every assignment.

        Skipped, returning ``False``, while the current task is loading the
        hierarchy.
        """
        if is_loading_hierarchy():
            self.logger.debug("Skipping assignment clear during hierarchy load")
            return False

        user_ids = await self.store.select_user_ids()
        count = await self.store.delete_all()

        self.cache.clear_memo()
        for user_id in user_ids:
            await self.cache.flush(user_id)

        self._record("clear")
        self.logger.warning("All assignments cleared", count=count, users=len(user_ids))
        return True

    async def flush_assignment_cache(self, user_id: UserId) -> None:
        await self.cache.flush(user_id)

    def _record(self, operation: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("authz_assignment_mutations_total", operation=operation)

"""
Hybrid authorization manager.

The authorization hierarchy is defined in a file and is read-only at
runtime; assignments of items to users are stored in a database and may be
cached per user.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Union

from shared.config import BaseConfig
from shared.metrics import MetricsCollector
from .access.evaluator import AccessEvaluator
from .assignments.cache import AssignmentCache, CacheDuration
from .assignments.manager import AssignmentManager
from .assignments.models import Assignment, UserId
from .cache.base import CacheBackend
from .hierarchy.loader import HierarchyStore, loading_hierarchy
from .hierarchy.models import AuthItem, HierarchySnapshot, ItemType
from .persistence.base import AssignmentStore
from .rules.engine import BusinessRuleEvaluator
from .rules.models import BusinessRule


class AuthManager:
    """Facade over the access evaluator and the assignment manager.

    One instance holds one request-local assignment memo; create an instance
    per request (or per unit of work) and share the hierarchy store,
    assignment store and cache backend between them.
    """

    def __init__(
        self,
        hierarchy: HierarchyStore,
        store: AssignmentStore,
        cache_backend: Optional[CacheBackend] = None,
        *,
        assignment_caching_duration: CacheDuration = 0,
        default_roles: Iterable[str] = (),
        application_id: str = "authz",
        rule_evaluator: Optional[BusinessRuleEvaluator] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.hierarchy = hierarchy
        self.store = store
        self.assignment_cache = AssignmentCache(
            store,
            cache_backend,
            assignment_caching_duration,
            application_id,
            metrics
        )
        self.evaluator = AccessEvaluator(
            hierarchy,
            self.assignment_cache,
            rule_evaluator,
            default_roles,
            metrics
        )
        self.assignments = AssignmentManager(hierarchy, store, self.assignment_cache, metrics)

    @classmethod
    def from_config(
        cls,
        config: BaseConfig,
        hierarchy: HierarchyStore,
        store: AssignmentStore,
        cache_backend: Optional[CacheBackend] = None,
        **kwargs
    ) -> "AuthManager":
        return cls(
            hierarchy,
            store,
            cache_backend,
            assignment_caching_duration=config.assignment_caching_duration,
            default_roles=config.default_roles,
            application_id=config.application_id,
            **kwargs
        )

    @property
    def default_roles(self) -> frozenset:
        return self.evaluator.default_roles

    # Access checks

    async def check_access(
        self,
        item_name: str,
        user_id: UserId,
        params: Optional[Mapping[str, Any]] = None
    ) -> bool:
        return await self.evaluator.check_access(item_name, user_id, params)

    # Assignments

    async def assign(
        self,
        item_name: str,
        user_id: UserId,
        business_rule: Optional[BusinessRule] = None,
        data: Any = None
    ) -> Assignment:
        return await self.assignments.assign(item_name, user_id, business_rule, data)

    async def revoke(self, item_name: str, user_id: UserId) -> bool:
        return await self.assignments.revoke(item_name, user_id)

    async def save_assignment(self, assignment: Assignment) -> None:
        await self.assignments.save_assignment(assignment)

    async def get_assignment(self, item_name: str, user_id: UserId) -> Optional[Assignment]:
        return await self.assignments.get_assignment(item_name, user_id)

    async def get_assignments(self, user_id: UserId) -> Dict[str, Assignment]:
        return await self.assignments.get_assignments(user_id)

    async def is_assigned(self, item_name: str, user_id: UserId) -> bool:
        return await self.assignments.is_assigned(item_name, user_id)

    async def clear_assignments(self) -> bool:
        return await self.assignments.clear_all_assignments()

    async def flush_assignment_cache(self, user_id: UserId) -> None:
        await self.assignments.flush_assignment_cache(user_id)

    def assignment_cache_key(self, user_id: UserId) -> str:
        return self.assignment_cache.cache_key(user_id)

    # Hierarchy queries

    async def get_item(self, name: str) -> Optional[AuthItem]:
        snapshot = await self.hierarchy.get_snapshot()
        return snapshot.get(name)

    async def get_items(
        self,
        item_type: Optional[Union[ItemType, str, int]] = None,
        user_id: Optional[UserId] = None
    ) -> Dict[str, AuthItem]:
        """Items of one type, or assigned to one user, or both, or all."""
        snapshot = await self.hierarchy.get_snapshot()
        wanted = ItemType.from_value(item_type) if item_type is not None else None

        if user_id is None:
            if wanted is None:
                return dict(snapshot.items)
            return snapshot.of_type(wanted)

        items = {}
        for name in await self.get_assignments(user_id):
            item = snapshot.get(name)
            if item is not None and (wanted is None or item.type == wanted):
                items[name] = item
        return items

    async def get_roles(self, user_id: Optional[UserId] = None) -> Dict[str, AuthItem]:
        return await self.get_items(ItemType.ROLE, user_id)

    async def get_tasks(self, user_id: Optional[UserId] = None) -> Dict[str, AuthItem]:
        return await self.get_items(ItemType.TASK, user_id)

    async def get_operations(self, user_id: Optional[UserId] = None) -> Dict[str, AuthItem]:
        return await self.get_items(ItemType.OPERATION, user_id)

    async def get_item_children(self, name: str) -> Dict[str, AuthItem]:
        snapshot = await self.hierarchy.get_snapshot()
        return {child: snapshot.items[child] for child in snapshot.children_of(name)}

    async def get_item_parents(self, name: str) -> Dict[str, AuthItem]:
        snapshot = await self.hierarchy.get_snapshot()
        return {parent: snapshot.items[parent] for parent in snapshot.parents_of(name)}

    async def has_item_child(self, parent: str, child: str) -> bool:
        snapshot = await self.hierarchy.get_snapshot()
        return snapshot.has_child(parent, child)

    # Loading

    async def load_hierarchy(self) -> HierarchySnapshot:
        """Reload the hierarchy.

        Resets all authorization data first, exactly like :meth:`clear_all`,
        except that stored assignments survive: the clear runs inside the
        load scope and is skipped.
        """
        with loading_hierarchy():
            await self.clear_all()
            return await self.hierarchy.load()

    async def clear_all(self) -> None:
        """Forget the loaded hierarchy and delete every assignment."""
        self.hierarchy.reset()
        await self.clear_assignments()

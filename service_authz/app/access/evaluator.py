"""
Access check evaluation.
"""

import time
from typing import Any, Dict, Iterable, Mapping, Optional, Set

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..assignments.cache import AssignmentCache
from ..assignments.models import Assignment, UserId, normalize_user_id
from ..hierarchy.loader import HierarchyStore
from ..hierarchy.models import AuthItem, HierarchySnapshot
from ..rules.engine import BusinessRuleEvaluator

logger = get_logger("authz.access")


class AccessEvaluator:
    """Decides whether a user may perform an item.

    Access to an item is granted when the item's own business rule passes and
    one of the following holds: the item is a default role, the user holds a
    direct assignment to it whose rule passes, or any parent of the item
    grants access.
    """

    def __init__(
        self,
        hierarchy: HierarchyStore,
        assignments: AssignmentCache,
        rule_evaluator: Optional[BusinessRuleEvaluator] = None,
        default_roles: Iterable[str] = (),
        metrics: Optional[MetricsCollector] = None,
    ):
        self.hierarchy = hierarchy
        self.assignments = assignments
        self.rule_evaluator = rule_evaluator or BusinessRuleEvaluator()
        self.default_roles = frozenset(default_roles)
        self.metrics = metrics

    async def check_access(
        self,
        item_name: str,
        user_id: UserId,
        params: Optional[Mapping[str, Any]] = None
    ) -> bool:
        """Check whether ``user_id`` may perform ``item_name``.

        Unknown items are denied. ``params`` are passed to every business
        rule evaluated along the way.
        """
        start_time = time.time()
        user_id = normalize_user_id(user_id)
        snapshot = await self.hierarchy.get_snapshot()

        if item_name not in snapshot:
            logger.debug("Access check for unknown item", item_name=item_name, user_id=user_id)
            allowed = False
        else:
            assignments = await self.assignments.get_assignments(user_id)
            walk = _AccessWalk(
                snapshot,
                assignments,
                params or {},
                self.rule_evaluator,
                self.default_roles
            )
            allowed = walk.grants(item_name)

        duration = time.time() - start_time
        if self.metrics is not None:
            self.metrics.record_access_check(allowed, duration)

        logger.debug(
            "Access checked",
            item_name=item_name,
            user_id=user_id,
            allowed=allowed,
            duration_ms=round(duration * 1000, 3)
        )
        return allowed


class _AccessWalk:
    """State of one top-level access check.

    Results are memoised per item for this check only, since business rules
    depend on the params. Items currently on the walk path are treated as not
    granting, which ends cycles. A denial reached through such a cut depends
    on the path and is not memoised.
    """

    def __init__(
        self,
        snapshot: HierarchySnapshot,
        assignments: Mapping[str, Assignment],
        params: Mapping[str, Any],
        rule_evaluator: BusinessRuleEvaluator,
        default_roles: frozenset,
    ):
        self.snapshot = snapshot
        self.assignments = assignments
        self.params = params
        self.rule_evaluator = rule_evaluator
        self.default_roles = default_roles
        self.memo: Dict[str, bool] = {}
        self.in_progress: Set[str] = set()
        self.cycles_cut = 0

    def grants(self, item_name: str) -> bool:
        if item_name in self.memo:
            return self.memo[item_name]

        item = self.snapshot.get(item_name)
        if item is None:
            return False

        if item_name in self.in_progress:
            self.cycles_cut += 1
            logger.warning("Cycle in authorization hierarchy", item_name=item_name)
            return False

        cuts_before = self.cycles_cut
        self.in_progress.add(item_name)
        try:
            allowed = self._evaluate(item)
        finally:
            self.in_progress.discard(item_name)

        if allowed or self.cycles_cut == cuts_before:
            self.memo[item_name] = allowed
        return allowed

    def _evaluate(self, item: AuthItem) -> bool:
        logger.debug("Checking permission", item_name=item.name)

        if not self.rule_evaluator.evaluate(item.business_rule, self.params, item.data):
            return False

        if item.name in self.default_roles:
            return True

        assignment = self.assignments.get(item.name)
        if assignment is not None and self.rule_evaluator.evaluate(
            assignment.business_rule, self.params, assignment.data
        ):
            return True

        # Assigned to an ancestor instead
        for parent in sorted(self.snapshot.parents_of(item.name)):
            if self.grants(parent):
                return True

        return False

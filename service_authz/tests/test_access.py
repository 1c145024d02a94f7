"""
Unit tests for access checks.
"""

from unittest.mock import MagicMock

import pytest

from service_authz.app.auth_manager import AuthManager
from service_authz.app.hierarchy.loader import HierarchyStore


SCENARIO = {
    "Admin": {"type": "role", "children": ["manageUser"]},
    "manageUser": {"type": "task", "children": ["createUser"]},
    "createUser": {"type": "operation"},
}


class TestAccessScenario:
    """The Admin -> manageUser -> createUser scenario."""

    @pytest.fixture
    def hierarchy_content(self):
        return SCENARIO

    @pytest.mark.asyncio
    async def test_ancestor_propagation(self, make_manager):
        """Test an assignment on an ancestor grants its descendants."""
        manager = make_manager()
        await manager.assign("Admin", 7)

        assert await manager.check_access("createUser", 7, {})
        assert await manager.check_access("manageUser", 7, {})
        assert await manager.check_access("Admin", 7, {})

    @pytest.mark.asyncio
    async def test_other_user_is_denied(self, make_manager):
        """Test a user without assignments is denied."""
        manager = make_manager()
        await manager.assign("Admin", 7)

        assert not await manager.check_access("createUser", 8, {})

    @pytest.mark.asyncio
    async def test_revoke_removes_access(self, make_manager):
        """Test revoking the ancestor assignment denies again."""
        manager = make_manager()
        await manager.assign("Admin", 7)
        assert await manager.check_access("createUser", 7, {})

        assert await manager.revoke("Admin", 7)

        assert not await manager.check_access("createUser", 7, {})

    @pytest.mark.asyncio
    async def test_revoke_invalidates_shared_cache(self, make_manager):
        """Test a revoke is seen by other managers sharing the backend."""
        writer = make_manager(assignment_caching_duration=3600)
        await writer.assign("Admin", 7)
        assert await make_manager(assignment_caching_duration=3600).check_access("createUser", 7)

        await writer.revoke("Admin", 7)

        assert not await make_manager(assignment_caching_duration=3600).check_access("createUser", 7)

    @pytest.mark.asyncio
    async def test_descendant_assignment_does_not_grant_ancestor(self, make_manager):
        """Test access flows down the hierarchy only."""
        manager = make_manager()
        await manager.assign("createUser", 7)

        assert await manager.check_access("createUser", 7)
        assert not await manager.check_access("manageUser", 7)
        assert not await manager.check_access("Admin", 7)


class TestAccessRules:
    """Test cases for rules, default roles and unknown items."""

    @pytest.mark.asyncio
    async def test_no_assignment_anywhere_denies(self, make_manager, hierarchy_content):
        """Test every item is denied to a user without assignments."""
        manager = make_manager()

        for item_name in hierarchy_content:
            assert not await manager.check_access(item_name, 42, {})

    @pytest.mark.asyncio
    async def test_unknown_item_denies(self, make_manager):
        """Test unknown items are denied, never raised."""
        manager = make_manager()
        await manager.assign("Admin", 7)

        assert not await manager.check_access("launchRockets", 7)

    @pytest.mark.asyncio
    async def test_default_role_grants_without_assignment(self, make_manager, store):
        """Test default roles apply to every user."""
        manager = make_manager(default_roles=["guest"])

        assert await manager.check_access("readUser", "anyone")
        assert await manager.check_access("guest", "anyone")
        assert not await manager.check_access("createUser", "anyone")
        assert manager.default_roles == frozenset({"guest"})

    @pytest.mark.asyncio
    async def test_item_rule_gates_access(self, make_manager):
        """Test an item's own rule must pass, even for assigned users."""
        manager = make_manager()
        await manager.assign("authenticated", 7)

        assert await manager.check_access("updateUser", 7, {"profile_owner_id": 7, "current_user_id": 7})
        assert not await manager.check_access("updateUser", 7, {"profile_owner_id": 8, "current_user_id": 7})
        assert not await manager.check_access("updateOwnProfile", 7, {})

    @pytest.mark.asyncio
    async def test_item_rule_applies_to_default_roles(self, hierarchy_file, store):
        """Test a default role whose own rule fails does not grant."""
        hierarchy_file.write_text(
            "member:\n"
            "  type: role\n"
            "  business_rule: {field: params.active, operator: equals, value: true}\n"
            "  children: [read]\n"
            "read:\n"
            "  type: operation\n"
        )
        manager = AuthManager(HierarchyStore(str(hierarchy_file), duration=0), store, default_roles=["member"])

        assert await manager.check_access("read", 1, {"active": True})
        assert not await manager.check_access("read", 1, {"active": False})

    @pytest.mark.asyncio
    async def test_assignment_rule_gates_access(self, make_manager):
        """Test an assignment's rule is evaluated with its data."""
        manager = make_manager()
        await manager.assign(
            "manageUser",
            7,
            [{"field": "params.region", "operator": "equals", "value_from": "data.region"}],
            {"region": "eu"}
        )

        assert await manager.check_access("createUser", 7, {"region": "eu"})
        assert not await manager.check_access("createUser", 7, {"region": "us"})

    @pytest.mark.asyncio
    async def test_failing_assignment_rule_falls_back_to_parents(self, make_manager):
        """Test another path can still grant when a direct assignment's rule fails."""
        manager = make_manager()
        await manager.assign("createUser", 7, {"field": "params.never", "operator": "exists"})
        await manager.assign("Admin", 7)

        assert await manager.check_access("createUser", 7, {})

    @pytest.mark.asyncio
    async def test_undecodable_assignment_rule_denies(self, make_manager, store):
        """Test a stored rule that no longer decodes denies."""
        store.rows[("createUser", "7")] = ("return $params['x'];", "null")
        manager = make_manager()

        assert not await manager.check_access("createUser", 7)

    @pytest.mark.asyncio
    async def test_assignments_read_once_per_check(self, make_manager, store):
        """Test the walk reads the user's set once."""
        await make_manager().assign("Admin", 7)
        store.select_all_for_user.reset_mock()

        await make_manager(assignment_caching_duration=False).check_access("createUser", 7)

        assert store.select_all_for_user.await_count == 1

    @pytest.mark.asyncio
    async def test_metrics_are_recorded(self, hierarchy, store):
        """Test decisions are reported to metrics."""
        metrics = MagicMock()
        manager = AuthManager(hierarchy, store, metrics=metrics)

        await manager.check_access("createUser", 7)

        allowed, duration = metrics.record_access_check.call_args.args
        assert allowed is False
        assert duration >= 0


class TestAccessCycles:
    """Test cases for cyclic hierarchies."""

    @pytest.fixture
    def hierarchy_content(self):
        return {
            "a": {"type": "role", "children": ["b"]},
            "b": {"type": "task", "children": ["c"]},
            "c": {"type": "task", "children": ["a", "op"]},
            "op": {"type": "operation"},
            "root": {"type": "role", "children": ["a"]},
        }

    @pytest.mark.asyncio
    async def test_cycle_terminates_with_deny(self, make_manager):
        """Test a cycle without assignments is denied."""
        manager = make_manager()

        assert not await manager.check_access("op", 1)
        assert not await manager.check_access("a", 1)

    @pytest.mark.asyncio
    async def test_cycle_member_grants(self, make_manager):
        """Test an assignment inside the cycle still grants."""
        manager = make_manager()
        await manager.assign("b", 1)

        assert await manager.check_access("op", 1)
        assert await manager.check_access("a", 1)

    @pytest.mark.asyncio
    async def test_grant_above_cycle(self, make_manager):
        """Test an ancestor above the cycle grants through it."""
        manager = make_manager()
        await manager.assign("root", 1)

        assert await manager.check_access("op", 1)
        assert await manager.check_access("c", 1)

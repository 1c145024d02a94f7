"""
Shared fixtures for Authorization service tests.
"""

from unittest.mock import AsyncMock

import pytest
import yaml

from service_authz.app.auth_manager import AuthManager
from service_authz.app.cache.memory import MemoryCache
from service_authz.app.hierarchy.loader import HierarchyStore
from service_authz.app.persistence.memory import MemoryAssignmentStore


# Admin -> manageUser -> createUser, plus a rule-gated task and a default role
HIERARCHY = {
    "createUser": {"type": "operation", "description": "Create a user"},
    "readUser": {"type": "operation"},
    "updateUser": {"type": "operation"},
    "manageUser": {"type": "task", "children": ["createUser", "readUser", "updateUser"]},
    "updateOwnProfile": {
        "type": "task",
        "business_rule": [
            {"field": "params.profile_owner_id", "operator": "equals", "value_from": "params.current_user_id"}
        ],
        "children": ["updateUser"],
    },
    "guest": {"type": "role", "children": ["readUser"]},
    "authenticated": {"type": "role", "children": ["guest", "updateOwnProfile"]},
    "Admin": {"type": "role", "children": ["manageUser", "authenticated"]},
}


@pytest.fixture
def hierarchy_content():
    """Hierarchy file content."""
    return HIERARCHY


@pytest.fixture
def hierarchy_file(tmp_path, hierarchy_content):
    """Hierarchy written to a YAML file."""
    path = tmp_path / "auth.yaml"
    path.write_text(yaml.safe_dump(hierarchy_content))
    return path


@pytest.fixture
def hierarchy(hierarchy_file):
    """Uncached hierarchy store."""
    return HierarchyStore(str(hierarchy_file), duration=0)


@pytest.fixture
def store():
    """In-memory assignment store whose reads are counted."""
    store = MemoryAssignmentStore()
    store.select_all_for_user = AsyncMock(wraps=store.select_all_for_user)
    return store


@pytest.fixture
def cache_backend():
    """In-memory cache backend."""
    return MemoryCache()


@pytest.fixture
def make_manager(hierarchy, store, cache_backend):
    """Factory for per-request managers sharing the same collaborators."""

    def factory(**kwargs):
        kwargs.setdefault("assignment_caching_duration", 0)
        backend = kwargs.pop("cache_backend", cache_backend)
        return AuthManager(hierarchy, store, backend, **kwargs)

    return factory

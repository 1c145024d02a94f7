"""
Unit tests for the Authorization service API.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from shared.errors import ValidationError
from service_authz.app.cache.memory import MemoryCache
from service_authz.app.main import AuthzService
from service_authz.app.persistence.memory import MemoryAssignmentStore


class TestAuthzService:
    """Test cases for AuthzService."""

    @pytest.fixture
    def authz_service(self, hierarchy_file):
        """Create AuthzService instance on in-memory backends."""
        return AuthzService(
            cache_backend="memory",
            assignment_backend="memory",
            hierarchy_file=str(hierarchy_file),
            assignment_caching_duration=300,
            default_roles=["guest"],
        )

    @pytest.fixture
    def client(self, authz_service):
        """Create test client running the service lifespan."""
        with TestClient(authz_service.app) as client:
            yield client

    def test_service_initialization(self, authz_service):
        """Test service initialization."""
        assert authz_service.service_name == "authz"
        assert authz_service.port == 8013
        assert isinstance(authz_service.cache_backend, MemoryCache)
        assert isinstance(authz_service.store, MemoryAssignmentStore)

    def test_unknown_backend(self, hierarchy_file):
        """Test unsupported backends are rejected."""
        with pytest.raises(ValidationError):
            AuthzService(cache_backend="memcached", hierarchy_file=str(hierarchy_file))

    def test_no_cache_backend(self, hierarchy_file):
        """Test the cache backend can be disabled."""
        service = AuthzService(cache_backend="none", assignment_backend="memory", hierarchy_file=str(hierarchy_file))

        assert service.cache_backend is None

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "authz"
        assert "access_check" in data["capabilities"]

    def test_health_endpoint(self, client):
        """Test health endpoint."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"] == {"cache": "ok", "assignments": "ok", "hierarchy": "ok"}

    @patch('service_authz.app.main.AuthzService._check_dependencies')
    def test_health_failure(self, mock_check_deps, client):
        """Test health endpoint when a dependency check raises."""
        mock_check_deps.side_effect = RuntimeError("boom")

        response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["status"] == "error"

    def test_metrics_endpoint(self, client):
        """Test Prometheus metrics are exposed."""
        client.post("/authz/check", json={"item_name": "readUser", "user_id": 1})

        response = client.get("/metrics")
        assert response.status_code == 200
        assert "authz_access_checks_total" in response.text

    def test_check_access_flow(self, client):
        """Test assign, check and revoke through the API."""
        check = {"item_name": "createUser", "user_id": 7, "params": {}}
        assert client.post("/authz/check", json=check).json()["allowed"] is False

        response = client.post("/authz/assignments", json={"item_name": "Admin", "user_id": 7})
        assert response.status_code == 201
        assert response.json() == {"item_name": "Admin", "user_id": "7", "business_rule": None, "data": None}

        response = client.post("/authz/check", json=check)
        assert response.json() == {"allowed": True, "item_name": "createUser", "user_id": "7"}
        assert client.post("/authz/check", json={**check, "user_id": 8}).json()["allowed"] is False

        response = client.delete("/authz/assignments/7/Admin")
        assert response.json()["revoked"] is True
        assert client.post("/authz/check", json=check).json()["allowed"] is False

        assert client.delete("/authz/assignments/7/Admin").json()["revoked"] is False

    def test_default_role(self, client):
        """Test default roles apply to anonymous users."""
        response = client.post("/authz/check", json={"item_name": "readUser", "user_id": "anonymous"})
        assert response.json()["allowed"] is True

    def test_check_unknown_item(self, client):
        """Test unknown items are denied."""
        response = client.post("/authz/check", json={"item_name": "launchRockets", "user_id": 7})
        assert response.status_code == 200
        assert response.json()["allowed"] is False

    def test_duplicate_assignment(self, client):
        """Test duplicate assignments return 409."""
        body = {"item_name": "Admin", "user_id": "7"}
        client.post("/authz/assignments", json=body)

        response = client.post("/authz/assignments", json=body)
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_ASSIGNMENT"

    def test_assign_unknown_item(self, client):
        """Test assigning an unknown item returns 404."""
        response = client.post("/authz/assignments", json={"item_name": "launchRockets", "user_id": "7"})
        assert response.status_code == 404
        assert response.json()["code"] == "UNKNOWN_ITEM"

    def test_update_assignment(self, client):
        """Test an assignment's rule can be replaced."""
        client.post("/authz/assignments", json={"item_name": "manageUser", "user_id": "7", "data": {"region": "eu"}})

        response = client.put("/authz/assignments/7/manageUser", json={
            "business_rule": [{"field": "params.region", "operator": "equals", "value_from": "data.region"}],
            "data": {"region": "eu"},
        })
        assert response.status_code == 200

        check = {"item_name": "createUser", "user_id": "7"}
        assert client.post("/authz/check", json={**check, "params": {"region": "eu"}}).json()["allowed"] is True
        assert client.post("/authz/check", json={**check, "params": {"region": "us"}}).json()["allowed"] is False

    def test_update_missing_assignment(self, client):
        """Test updating a missing assignment returns 404."""
        response = client.put("/authz/assignments/7/Admin", json={"data": 1})
        assert response.status_code == 404
        assert response.json()["code"] == "ASSIGNMENT_NOT_FOUND"

    def test_user_assignments(self, client):
        """Test listing a user's assignments."""
        client.post("/authz/assignments", json={"item_name": "Admin", "user_id": "7"})
        client.post("/authz/assignments", json={"item_name": "guest", "user_id": "7", "data": {"a": 1}})

        response = client.get("/authz/users/7/assignments")
        data = response.json()
        assert data["total"] == 2
        assert [a["item_name"] for a in data["assignments"]] == ["Admin", "guest"]
        assert data["assignments"][1]["data"] == {"a": 1}

    def test_clear_assignments(self, client):
        """Test clearing every assignment."""
        client.post("/authz/assignments", json={"item_name": "Admin", "user_id": "7"})

        response = client.delete("/authz/assignments")
        assert response.json() == {"cleared": True}
        assert client.get("/authz/users/7/assignments").json()["total"] == 0

    def test_items(self, client):
        """Test item listing and filtering."""
        roles = client.get("/authz/items", params={"type": "role"}).json()
        assert [item["name"] for item in roles["items"]] == ["Admin", "authenticated", "guest"]

        legacy = client.get("/authz/items", params={"type": "2"}).json()
        assert legacy["total"] == 3

        client.post("/authz/assignments", json={"item_name": "createUser", "user_id": "7"})
        assigned = client.get("/authz/items", params={"user_id": "7"}).json()
        assert [item["name"] for item in assigned["items"]] == ["createUser"]

    def test_items_invalid_type(self, client):
        """Test an unknown item type is a validation error."""
        response = client.get("/authz/items", params={"type": "group"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_get_item(self, client):
        """Test single item lookup."""
        response = client.get("/authz/items/manageUser")
        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "task"
        assert data["children"] == ["createUser", "readUser", "updateUser"]

        assert client.get("/authz/items/missing").status_code == 404

    def test_reload_hierarchy(self, client, hierarchy_file):
        """Test reloading picks up file edits and keeps assignments."""
        client.post("/authz/assignments", json={"item_name": "Admin", "user_id": "7"})
        hierarchy_file.write_text("Admin:\n  type: role\n  children: [audit]\naudit:\n  type: operation\n")

        response = client.post("/authz/hierarchy/reload")
        assert response.json() == {"reloaded": True, "items": 2}

        assert client.post("/authz/check", json={"item_name": "audit", "user_id": "7"}).json()["allowed"] is True
        assert client.get("/authz/users/7/assignments").json()["total"] == 1

    def test_request_id_header(self, client):
        """Test requests carrying a request id are served."""
        response = client.get("/", headers={"x-request-id": "req-123"})
        assert response.status_code == 200

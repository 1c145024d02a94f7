"""
Authorization service: hybrid file hierarchy and stored assignments.
"""

from typing import Optional

from fastapi import Query

from shared.base_service import BaseService
from shared.errors import UnknownItemError, ValidationError
from shared.logging import set_user_context

from .auth_manager import AuthManager
from .cache.base import CacheBackend
from .cache.memory import MemoryCache
from .cache.redis_cache import RedisCache
from .hierarchy.loader import HierarchyStore
from .hierarchy.models import ItemType
from .models import (
    AccessCheckRequest, AccessCheckResponse,
    AssignmentCreateRequest, AssignmentUpdateRequest,
    AssignmentResponse, AssignmentListResponse,
    ItemResponse, ItemListResponse,
)
from .assignments.models import Assignment, normalize_user_id
from .persistence.base import AssignmentStore
from .persistence.memory import MemoryAssignmentStore
from .persistence.postgres import PostgreSQLAssignmentStore
from .rules.engine import BusinessRuleEvaluator


class AuthzService(BaseService):
    """Authorization service implementation."""

    def __init__(self, **config_overrides):
        super().__init__("authz", 8013, **config_overrides)

        self.cache_backend = self._create_cache_backend()
        self.store = self._create_assignment_store()
        self.hierarchy = HierarchyStore(
            self.config.hierarchy_file,
            self.cache_backend,
            self.config.hierarchy_caching_duration,
            self.config.application_id
        )
        self.rule_evaluator = BusinessRuleEvaluator()

        self._setup_authz_routes()

    def _create_cache_backend(self) -> Optional[CacheBackend]:
        backend = self.config.cache_backend.lower()
        if backend == "redis":
            return RedisCache(self.config.redis_url)
        if backend == "memory":
            return MemoryCache()
        if backend in ("", "none"):
            return None
        raise ValidationError("Unknown cache backend", {"cache_backend": self.config.cache_backend})

    def _create_assignment_store(self) -> AssignmentStore:
        backend = self.config.assignment_backend.lower()
        if backend == "postgres":
            return PostgreSQLAssignmentStore(self.config.postgres_dsn, self.config.assignment_table)
        if backend == "memory":
            return MemoryAssignmentStore()
        raise ValidationError("Unknown assignment backend", {"assignment_backend": self.config.assignment_backend})

    def new_manager(self) -> AuthManager:
        """Manager for one request; its assignment memo dies with the request."""
        return AuthManager.from_config(
            self.config,
            self.hierarchy,
            self.store,
            self.cache_backend,
            rule_evaluator=self.rule_evaluator,
            metrics=self.metrics
        )

    def _setup_authz_routes(self):
        """Set up authorization-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "authz",
                "message": "Hybrid Authorization Service",
                "version": "1.0.0",
                "capabilities": ["access_check", "assignments", "hierarchy"]
            }

        @self.app.post("/authz/check", response_model=AccessCheckResponse)
        async def check_access(request: AccessCheckRequest):
            """Check whether a user may perform an item."""
            user_id = normalize_user_id(request.user_id)
            set_user_context(user_id, self.config.application_id)

            allowed = await self.new_manager().check_access(request.item_name, user_id, request.params)

            return AccessCheckResponse(allowed=allowed, item_name=request.item_name, user_id=user_id)

        @self.app.get("/authz/users/{user_id}/assignments", response_model=AssignmentListResponse)
        async def get_user_assignments(user_id: str):
            """List a user's assignments."""
            assignments = await self.new_manager().get_assignments(user_id)

            return AssignmentListResponse(
                user_id=user_id,
                assignments=[
                    AssignmentResponse.from_assignment(assignments[name])
                    for name in sorted(assignments)
                ],
                total=len(assignments)
            )

        @self.app.post("/authz/assignments", response_model=AssignmentResponse, status_code=201)
        async def create_assignment(request: AssignmentCreateRequest):
            """Assign an item to a user."""
            assignment = await self.new_manager().assign(
                request.item_name,
                request.user_id,
                request.business_rule,
                request.data
            )
            return AssignmentResponse.from_assignment(assignment)

        @self.app.put("/authz/assignments/{user_id}/{item_name}", response_model=AssignmentResponse)
        async def update_assignment(user_id: str, item_name: str, request: AssignmentUpdateRequest):
            """Replace the business rule and data of an assignment."""
            assignment = Assignment(
                item_name=item_name,
                user_id=user_id,
                business_rule=request.business_rule,
                data=request.data
            )
            await self.new_manager().save_assignment(assignment)
            return AssignmentResponse.from_assignment(assignment)

        @self.app.delete("/authz/assignments/{user_id}/{item_name}")
        async def revoke_assignment(user_id: str, item_name: str):
            """Revoke an assignment."""
            revoked = await self.new_manager().revoke(item_name, user_id)
            return {"revoked": revoked, "item_name": item_name, "user_id": user_id}

        @self.app.delete("/authz/assignments")
        async def clear_assignments():
            """Delete every assignment."""
            cleared = await self.new_manager().clear_assignments()
            return {"cleared": cleared}

        @self.app.get("/authz/items", response_model=ItemListResponse)
        async def get_items(
            type: Optional[str] = Query(None, description="operation, task or role"),
            user_id: Optional[str] = Query(None, description="Only items assigned to this user")
        ):
            """List authorization items."""
            try:
                item_type = ItemType.from_value(type) if type is not None else None
            except ValueError as e:
                raise ValidationError(str(e), {"type": type}) from e

            items = await self.new_manager().get_items(item_type, user_id)
            return ItemListResponse(
                items=[ItemResponse.from_item(items[name]) for name in sorted(items)],
                total=len(items)
            )

        @self.app.get("/authz/items/{name}", response_model=ItemResponse)
        async def get_item(name: str):
            """Get one authorization item."""
            item = await self.new_manager().get_item(name)
            if item is None:
                raise UnknownItemError(name)
            return ItemResponse.from_item(item)

        @self.app.post("/authz/hierarchy/reload")
        async def reload_hierarchy():
            """Reload the hierarchy file, bypassing the cached content."""
            await self.hierarchy.invalidate()
            snapshot = await self.new_manager().load_hierarchy()
            return {"reloaded": True, "items": len(snapshot)}

    async def _check_dependencies(self):
        """Check authorization service dependencies."""
        dependencies = {}

        if self.cache_backend is not None:
            try:
                dependencies["cache"] = "ok" if await self.cache_backend.health_check() else "error"
            except Exception:
                dependencies["cache"] = "error"

        try:
            dependencies["assignments"] = "ok" if await self.store.health_check() else "error"
        except Exception:
            dependencies["assignments"] = "error"

        dependencies["hierarchy"] = "ok" if self.hierarchy.loaded else "not_loaded"

        return dependencies

    async def start(self):
        """Start authorization service components."""
        if self.cache_backend is not None:
            await self.cache_backend.start()
        await self.store.start()

        snapshot = await self.hierarchy.load()

        self.logger.info(f"Authorization service started with {len(snapshot)} items")

    async def stop(self):
        """Stop authorization service components."""
        await self.store.stop()
        if self.cache_backend is not None:
            await self.cache_backend.stop()

        self.logger.info("Authorization service stopped")


def create_app(**config_overrides):
    """Create authorization service application."""
    service = AuthzService(**config_overrides)
    return service.app


if __name__ == "__main__":
    service = AuthzService()
    service.run()

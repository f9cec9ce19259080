"""Integration tests for the Authorize route dependency.

A small application registers rules for a handful of operations and
mounts routes guarded by them; requests go through the real exception
handlers so the problem documents are checked too.
"""

from collections.abc import AsyncGenerator

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from opsconsole.core.auth.dependencies import get_optional_caller
from opsconsole.core.auth.schemas import Caller
from opsconsole.core.errors import register_exception_handlers
from opsconsole.core.permissions import (
    Authorize,
    PermissionRegistry,
    public,
    require_all_permissions,
    require_any_permission,
    require_permission,
)
from tests.factories.caller import build_caller


pytestmark = pytest.mark.integration


class TestAuthorizeDependency:
    """Tests for routes guarded through the registry."""

    @pytest.fixture
    def guarded_app(self) -> FastAPI:
        """Create an app with guarded test routes."""
        app = FastAPI()
        register_exception_handlers(app)

        registry = PermissionRegistry()
        registry.register("users.delete", require_permission("users", "delete"))
        registry.register(
            "users.edit",
            require_any_permission("users:update:all", "users:update:own"),
        )
        registry.register(
            "backups.create",
            require_all_permissions("backups:create:all", "audit:create:all"),
        )
        registry.register("status.show", public(require_permission("status", "view")))
        app.state.permissions = registry

        @app.delete("/users/{name}", dependencies=[Depends(Authorize("users.delete"))])
        async def delete_user(name: str) -> dict[str, str]:
            return {"deleted": name}

        @app.patch("/users/{name}", dependencies=[Depends(Authorize("users.edit"))])
        async def edit_user(name: str) -> dict[str, str]:
            return {"edited": name}

        @app.post("/backups", dependencies=[Depends(Authorize("backups.create"))])
        async def create_backup() -> dict[str, str]:
            return {"status": "queued"}

        @app.get("/status", dependencies=[Depends(Authorize("status.show"))])
        async def show_status() -> dict[str, str]:
            return {"status": "ok"}

        @app.get("/whoami", dependencies=[Depends(Authorize("whoami"))])
        async def whoami() -> dict[str, str]:
            return {"status": "ok"}

        return app

    @pytest.fixture
    async def test_client(
        self, guarded_app: FastAPI
    ) -> AsyncGenerator[AsyncClient, None]:
        """Create test client with no caller."""
        guarded_app.dependency_overrides[get_optional_caller] = lambda: None
        async with AsyncClient(
            transport=ASGITransport(app=guarded_app),
            base_url="http://test",
        ) as client:
            yield client

    @pytest.fixture
    def login_as(self, guarded_app: FastAPI):
        def _login(caller: Caller | None) -> None:
            guarded_app.dependency_overrides[get_optional_caller] = lambda: caller

        return _login

    async def test_unauthenticated_is_401(self, test_client: AsyncClient):
        """A guarded route without a caller is 401, never 403."""
        response = await test_client.delete("/users/jdoe")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["detail"] == "User not authenticated"
        assert body["type"].endswith("/errors/unauthenticated")

    async def test_missing_permission_is_403_with_detail(
        self, test_client: AsyncClient, login_as
    ):
        """View and update do not allow delete; the message names the gap."""
        login_as(build_caller("users:view:all", "users:update:all"))

        response = await test_client.delete("/users/jdoe")

        assert response.status_code == 403
        body = response.json()
        assert body["detail"] == "Missing required permissions: users:delete:all"
        assert body["missing_permissions"] == ["users:delete:all"]
        assert body["status"] == 403
        assert body["instance"] == "/users/jdoe"

    async def test_superuser_allowed(self, test_client: AsyncClient, login_as):
        login_as(build_caller("*:*:*"))

        response = await test_client.delete("/users/jdoe")

        assert response.status_code == 200
        assert response.json() == {"deleted": "jdoe"}

    async def test_any_allows_second_requirement(
        self, test_client: AsyncClient, login_as
    ):
        login_as(build_caller("users:update:own"))

        response = await test_client.patch("/users/jdoe")

        assert response.status_code == 200

    async def test_any_denial_lists_every_requirement(
        self, test_client: AsyncClient, login_as
    ):
        login_as(build_caller("users:view:all"))

        response = await test_client.patch("/users/jdoe")

        assert response.status_code == 403
        assert response.json()["detail"] == (
            "Missing required permissions: users:update:all, users:update:own"
        )

    async def test_all_denial_lists_only_missing(
        self, test_client: AsyncClient, login_as
    ):
        login_as(build_caller("backups:create:all"))

        response = await test_client.post("/backups")

        assert response.status_code == 403
        assert response.json()["missing_permissions"] == ["audit:create:all"]

    async def test_all_allows_when_every_requirement_met(
        self, test_client: AsyncClient, login_as
    ):
        login_as(build_caller("backups:create:all", "audit:create:all"))

        response = await test_client.post("/backups")

        assert response.status_code == 200

    async def test_wildcard_grants(self, test_client: AsyncClient, login_as):
        login_as(build_caller("backups:*:*", "*:create:*"))

        response = await test_client.post("/backups")

        assert response.status_code == 200

    async def test_public_route_ignores_requirements(self, test_client: AsyncClient):
        response = await test_client.get("/status")

        assert response.status_code == 200

    async def test_public_route_with_unprivileged_caller(
        self, test_client: AsyncClient, login_as
    ):
        login_as(build_caller())

        response = await test_client.get("/status")

        assert response.status_code == 200

    async def test_undeclared_operation_is_unrestricted(
        self, test_client: AsyncClient
    ):
        response = await test_client.get("/whoami")

        assert response.status_code == 200

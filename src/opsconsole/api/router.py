"""Root API router with health endpoints and module mounting.

Also builds the application's ``PermissionRegistry`` from the rules
every discovered module declares.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text

from opsconsole.api.dependencies import DBSession
from opsconsole.config import settings
from opsconsole.core.permissions.declarations import PermissionRegistry, public
from opsconsole.core.permissions.gate import Authorize, check_route_declarations
from opsconsole.modules import discover_modules


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    checks: dict[str, str]


health_rules = {
    "health.live": public(),
    "health.ready": public(),
    "health.info": public(),
}

# Health check endpoints (no /api/v1 prefix)
health_router = APIRouter(tags=["health"])


@health_router.get(
    "/health/live",
    response_model=HealthResponse,
    summary="Liveness probe",
    dependencies=[Depends(Authorize("health.live"))],
)
async def liveness() -> HealthResponse:
    """Liveness probe endpoint."""
    return HealthResponse(status="alive")


@health_router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Checks database connectivity.",
    dependencies=[Depends(Authorize("health.ready"))],
)
async def readiness(db: DBSession) -> JSONResponse:
    """Readiness probe endpoint."""
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = str(e)

    all_ok = all(v == "ok" for v in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK
        if all_ok
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_ok else "degraded",
            "checks": checks,
        },
    )


@health_router.get(
    "/info",
    summary="Application info",
    dependencies=[Depends(Authorize("health.info"))],
)
async def info() -> dict[str, Any]:
    """Application info endpoint."""
    return {
        "app": settings.app_name,
        "environment": settings.environment,
    }


def build_api() -> tuple[APIRouter, PermissionRegistry]:
    """Mount discovered modules and register their permission rules.

    Returns:
        The root router and the populated registry

    Raises:
        PermissionDeclarationError: If two modules declare the same operation,
            or a route is guarded by an operation id nobody declares
    """
    registry = PermissionRegistry()
    registry.register_many(health_rules)

    v1_router = APIRouter(prefix="/api/v1")
    for module in discover_modules():
        v1_router.include_router(module.router)
        registry.register_many(getattr(module, "permission_rules", {}))

    api_router = APIRouter()
    api_router.include_router(health_router)
    api_router.include_router(v1_router)

    check_route_declarations(api_router.routes, registry)
    return api_router, registry

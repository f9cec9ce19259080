"""RBAC administration API routes.

Provides endpoints for:
- The caller's own effective permissions (feeds the UI visibility gate)
- Role catalog: create, update, clone, delete
- Role assignment and the level-based management check
- Per-user grant and deny overrides
- Permission catalog
- Effective permissions and permission checks for any user
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from opsconsole.core.auth.dependencies import CurrentCaller
from opsconsole.core.permissions.gate import Authorize
from opsconsole.modules.rbac.schemas import (
    EffectivePermissionsResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionCreate,
    PermissionOverrideResponse,
    PermissionOverrideSet,
    PermissionResponse,
    RoleAssign,
    RoleAssignmentResponse,
    RoleClone,
    RoleCreate,
    RoleManageResponse,
    RoleResponse,
    RoleUpdate,
    UserRoleResponse,
)
from opsconsole.modules.rbac.services import RbacSvc, group_by_resource


router = APIRouter(prefix="/rbac", tags=["rbac"])


@router.get(
    "/me/permissions",
    response_model=EffectivePermissionsResponse,
    summary="Current user's permissions",
    description="Effective permissions of the authenticated caller, flat and grouped by resource.",
)
async def get_my_permissions(caller: CurrentCaller) -> EffectivePermissionsResponse:
    """Return the caller's own permission set."""
    return EffectivePermissionsResponse(
        user_id=caller.id,
        permissions=sorted(caller.permissions),
        grouped=group_by_resource(caller.permissions),
        roles=list(caller.roles),
    )


@router.get(
    "/roles",
    response_model=list[RoleResponse],
    summary="List roles",
    dependencies=[Depends(Authorize("rbac.roles.list"))],
)
async def list_roles(service: RbacSvc) -> list[RoleResponse]:
    """List roles, highest level first."""
    return [RoleResponse.from_role(role) for role in await service.list_roles()]


@router.post(
    "/roles",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create role",
    dependencies=[Depends(Authorize("rbac.roles.create"))],
)
async def create_role(data: RoleCreate, service: RbacSvc) -> RoleResponse:
    """Create a role from catalog permission strings."""
    return RoleResponse.from_role(await service.create_role(data))


@router.put(
    "/roles/{role_id}",
    response_model=RoleResponse,
    summary="Update role",
    description="System roles accept only a new permission set.",
    dependencies=[Depends(Authorize("rbac.roles.update"))],
)
async def update_role(role_id: UUID, data: RoleUpdate, service: RbacSvc) -> RoleResponse:
    """Update the fields present in the request."""
    return RoleResponse.from_role(await service.update_role(role_id, data))


@router.delete(
    "/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete role",
    description="Refused for system roles and roles still assigned to users.",
    dependencies=[Depends(Authorize("rbac.roles.delete"))],
)
async def delete_role(role_id: UUID, service: RbacSvc) -> None:
    await service.delete_role(role_id)


@router.post(
    "/roles/{role_id}/clone",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Clone role",
    dependencies=[Depends(Authorize("rbac.roles.clone"))],
)
async def clone_role(role_id: UUID, data: RoleClone, service: RbacSvc) -> RoleResponse:
    """Copy a role's level and permissions under a new name."""
    return RoleResponse.from_role(await service.clone_role(role_id, data))


@router.post(
    "/assign",
    response_model=RoleAssignmentResponse,
    summary="Assign role to user",
    dependencies=[Depends(Authorize("rbac.roles.assign"))],
)
async def assign_role(
    data: RoleAssign,
    service: RbacSvc,
    caller: CurrentCaller,
) -> RoleAssignmentResponse:
    """Assign a role to a user."""
    assignment = await service.assign_role(data, assigned_by=caller.id)
    return RoleAssignmentResponse.model_validate(assignment)


@router.delete(
    "/users/{user_id}/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove role from user",
    dependencies=[Depends(Authorize("rbac.roles.unassign"))],
)
async def remove_role(user_id: UUID, role_id: UUID, service: RbacSvc) -> None:
    """Remove a role assignment."""
    await service.remove_role(user_id, role_id)


@router.get(
    "/users/{user_id}/roles",
    response_model=list[UserRoleResponse],
    summary="User's roles",
    description="Current role assignments, highest level first.",
    dependencies=[Depends(Authorize("rbac.users.roles"))],
)
async def get_user_roles(user_id: UUID, service: RbacSvc) -> list[UserRoleResponse]:
    assignments = await service.get_user_roles(user_id)
    return [UserRoleResponse.from_assignment(a) for a in assignments]


@router.get(
    "/users/{user_id}/can-manage-role/{role_id}",
    response_model=RoleManageResponse,
    summary="Check role management rank",
    description="True when the user's highest role level is above the role's level.",
    dependencies=[Depends(Authorize("rbac.roles.can_manage"))],
)
async def can_manage_role(
    user_id: UUID, role_id: UUID, service: RbacSvc
) -> RoleManageResponse:
    return RoleManageResponse(
        user_id=user_id,
        role_id=role_id,
        can_manage=await service.can_manage_role(user_id, role_id),
    )


@router.put(
    "/users/{user_id}/overrides",
    response_model=PermissionOverrideResponse,
    summary="Grant or deny a permission to a user",
    dependencies=[Depends(Authorize("rbac.users.overrides.set"))],
)
async def set_permission_override(
    user_id: UUID, data: PermissionOverrideSet, service: RbacSvc
) -> PermissionOverrideResponse:
    """Create or replace the user's override for one catalog permission."""
    override = await service.set_permission_override(user_id, data)
    return PermissionOverrideResponse.from_override(override)


@router.delete(
    "/users/{user_id}/overrides/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a permission override",
    dependencies=[Depends(Authorize("rbac.users.overrides.remove"))],
)
async def remove_permission_override(
    user_id: UUID, permission_id: UUID, service: RbacSvc
) -> None:
    await service.remove_permission_override(user_id, permission_id)


@router.get(
    "/users/{user_id}/permissions",
    response_model=EffectivePermissionsResponse,
    summary="User's effective permissions",
    dependencies=[Depends(Authorize("rbac.users.permissions"))],
)
async def get_user_permissions(
    user_id: UUID, service: RbacSvc
) -> EffectivePermissionsResponse:
    """Return the effective permission set of any user."""
    permissions = await service.effective_permissions(user_id)
    return EffectivePermissionsResponse(
        user_id=user_id,
        permissions=sorted(permissions),
        grouped=group_by_resource(permissions),
    )


@router.get(
    "/permissions",
    response_model=dict[str, list[PermissionResponse]],
    summary="Permission catalog",
    description="Active permissions grouped by category.",
    dependencies=[Depends(Authorize("rbac.permissions.list"))],
)
async def list_permissions(service: RbacSvc) -> dict[str, list[PermissionResponse]]:
    """Return the permission catalog grouped by category."""
    grouped = await service.get_permissions_by_category()
    return {
        category: [PermissionResponse.model_validate(p) for p in permissions]
        for category, permissions in grouped.items()
    }


@router.post(
    "/permissions",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create permission",
    dependencies=[Depends(Authorize("rbac.permissions.create"))],
)
async def create_permission(
    data: PermissionCreate, service: RbacSvc
) -> PermissionResponse:
    """Add a permission to the catalog."""
    return PermissionResponse.model_validate(await service.create_permission(data))


@router.post(
    "/check-permission",
    response_model=PermissionCheckResponse,
    summary="Check a user's permission",
    dependencies=[Depends(Authorize("rbac.permissions.check"))],
)
async def check_permission(
    data: PermissionCheckRequest, service: RbacSvc
) -> PermissionCheckResponse:
    """Check whether a user holds a permission."""
    requirement = data.requirement
    return PermissionCheckResponse(
        user_id=data.user_id,
        permission=requirement.key,
        has_permission=await service.check_permission(data.user_id, requirement),
    )

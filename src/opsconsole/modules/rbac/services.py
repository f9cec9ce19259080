"""RBAC service for business logic."""

from collections import defaultdict
from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends

from opsconsole.api.dependencies import DBSession
from opsconsole.core.auth.schemas import Caller
from opsconsole.core.errors import ConflictError, NotFoundError, ValidationError
from opsconsole.core.permissions.checker import PermissionChecker
from opsconsole.core.permissions.effective import (
    PermissionOverride,
    RoleGrant,
    active_role_names,
    compute_effective_permissions,
    highest_level,
    is_current,
)
from opsconsole.core.permissions.grammar import PermissionRequirement
from opsconsole.core.permissions.models import Permission, Role, UserPermission, UserRole
from opsconsole.modules.rbac.repos import RbacRepository
from opsconsole.modules.rbac.schemas import (
    PermissionCreate,
    PermissionOverrideSet,
    RoleAssign,
    RoleClone,
    RoleCreate,
    RoleUpdate,
)
from opsconsole.modules.users.models import User


logger = structlog.get_logger()


def group_by_resource(permissions: frozenset[str] | set[str]) -> dict[str, list[str]]:
    """Group canonical strings by their resource segment."""
    grouped: dict[str, list[str]] = defaultdict(list)
    for key in sorted(permissions):
        grouped[key.split(":", 1)[0]].append(key)
    return dict(grouped)


class RbacService:
    """Service for roles, permissions and effective permission sets."""

    def __init__(self, repo: RbacRepository) -> None:
        self.repo = repo

    # ============================================================
    # Effective permissions
    # ============================================================

    async def _load_grants(
        self, user_id: UUID
    ) -> tuple[list[RoleGrant], list[PermissionOverride]]:
        assignments = await self.repo.get_role_assignments(user_id)
        overrides = await self.repo.get_permission_overrides(user_id)

        grants = [
            RoleGrant(
                role_name=a.role.name,
                permissions=tuple(a.role.permission_keys),
                level=a.role.level,
                is_active=a.is_active and a.role.is_active,
                expires_at=a.expires_at,
            )
            for a in assignments
        ]
        direct = [
            PermissionOverride(
                permission=o.permission.key,
                is_denied=o.is_denied,
                is_active=o.is_active and o.permission.is_active,
                expires_at=o.expires_at,
            )
            for o in overrides
        ]
        return grants, direct

    async def effective_permissions(self, user_id: UUID) -> frozenset[str]:
        """Compute the granted set of a user from roles and overrides."""
        grants, overrides = await self._load_grants(user_id)
        return compute_effective_permissions(grants, overrides)

    async def build_caller(self, user: User) -> Caller:
        """Materialize the caller context at authentication time."""
        grants, overrides = await self._load_grants(user.id)
        now = datetime.now(UTC)
        permissions = compute_effective_permissions(grants, overrides, now=now)

        logger.debug(
            "effective_permissions_calculated",
            user_id=str(user.id),
            count=len(permissions),
        )

        return Caller(
            id=user.id,
            username=user.username,
            permissions=permissions,
            roles=active_role_names(grants, now=now),
        )

    async def check_permission(
        self, user_id: UUID, requirement: PermissionRequirement
    ) -> bool:
        """Check one requirement for any user."""
        permissions = await self.effective_permissions(user_id)
        return PermissionChecker(permissions).satisfies(requirement)

    # ============================================================
    # Roles
    # ============================================================

    async def list_roles(self) -> list[Role]:
        return await self.repo.list_roles()

    async def get_role(self, role_id: UUID) -> Role:
        """Fetch a role.

        Raises:
            NotFoundError: If the role does not exist
        """
        role = await self.repo.get_role(role_id)
        if not role:
            raise NotFoundError("Role not found", resource="role", resource_id=str(role_id))
        return role

    async def _catalog_permissions(self, keys: list[str]) -> list[Permission]:
        permissions = await self.repo.get_permissions_by_keys(keys)
        unknown = sorted(set(keys) - {p.key for p in permissions})
        if unknown:
            raise ValidationError(
                "Unknown permissions",
                errors=[
                    {"field": "permissions", "message": f"Unknown permission {key}"}
                    for key in unknown
                ],
            )
        return permissions

    async def _ensure_name_free(self, name: str) -> None:
        if await self.repo.get_role_by_name(name):
            raise ConflictError(
                "Role already exists",
                error_code="role_exists",
                details={"name": name},
            )

    async def create_role(self, data: RoleCreate) -> Role:
        """Create a role from catalog permission strings.

        Args:
            data: Role data; permissions are canonical strings

        Returns:
            The created role

        Raises:
            ConflictError: If the role name is taken
            ValidationError: If a permission is not in the catalog
        """
        await self._ensure_name_free(data.name)
        permissions = await self._catalog_permissions(data.permissions)

        role = Role(
            name=data.name,
            display_name=data.display_name,
            description=data.description,
            level=data.level,
            is_system=False,
            permissions=permissions,
        )
        role = await self.repo.create_role(role)
        logger.info("role_created", role=role.name, permissions=len(permissions))
        return role

    async def update_role(self, role_id: UUID, data: RoleUpdate) -> Role:
        """Apply the fields present in ``data`` to a role.

        System roles only accept a new permission set.

        Raises:
            NotFoundError: If the role does not exist
            ConflictError: If a system role property or a taken name is set
            ValidationError: If a permission is not in the catalog
        """
        role = await self.get_role(role_id)
        # Only description may be cleared with an explicit null
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        permission_keys = changes.pop("permissions", None)

        if role.is_system and changes:
            raise ConflictError(
                "Cannot modify system role properties. Only permissions can be updated.",
                error_code="system_role",
                details={"role": role.name, "fields": sorted(changes)},
            )
        if changes.get("name") and changes["name"] != role.name:
            await self._ensure_name_free(changes["name"])

        for field_name, value in changes.items():
            setattr(role, field_name, value)
        if permission_keys is not None:
            role.permissions = await self._catalog_permissions(permission_keys)

        role = await self.repo.update_role(role)
        logger.info("role_updated", role=role.name, fields=sorted(data.model_fields_set))
        return role

    async def delete_role(self, role_id: UUID) -> None:
        """Delete a role nobody holds.

        Raises:
            NotFoundError: If the role does not exist
            ConflictError: If the role is a system role or is assigned
        """
        role = await self.get_role(role_id)
        if role.is_system:
            raise ConflictError(
                "Cannot delete system roles",
                error_code="system_role",
                details={"role": role.name},
            )

        holders = await self.repo.count_role_assignments(role_id)
        if holders:
            raise ConflictError(
                f"Cannot delete role with {holders} assigned users",
                error_code="role_in_use",
                details={"role": role.name, "assigned_users": holders},
            )

        await self.repo.delete_role(role)
        logger.info("role_deleted", role=role.name)

    async def clone_role(self, role_id: UUID, data: RoleClone) -> Role:
        """Copy a role's level and active permissions under a new name.

        The copy is never a system role.
        """
        source = await self.get_role(role_id)
        await self._ensure_name_free(data.name)

        role = Role(
            name=data.name,
            display_name=data.display_name or f"{source.display_name} (Copy)",
            description=source.description,
            level=source.level,
            is_system=False,
            permissions=[p for p in source.permissions if p.is_active],
        )
        role = await self.repo.create_role(role)
        logger.info("role_cloned", source=source.name, role=role.name)
        return role

    async def assign_role(self, data: RoleAssign, assigned_by: UUID) -> UserRole:
        """Assign a role to a user.

        Re-assigning an existing role reactivates it with the new expiry.

        Raises:
            NotFoundError: If the role does not exist
        """
        role = await self.get_role(data.role_id)

        assignment = await self.repo.get_assignment(data.user_id, data.role_id)
        if assignment:
            assignment.is_active = True
            assignment.expires_at = data.expires_at
            assignment.reason = data.reason
            assignment.assigned_by = assigned_by
        else:
            assignment = await self.repo.add_assignment(
                UserRole(
                    user_id=data.user_id,
                    role_id=data.role_id,
                    is_active=True,
                    expires_at=data.expires_at,
                    reason=data.reason,
                    assigned_by=assigned_by,
                )
            )

        logger.info(
            "role_assigned",
            user_id=str(data.user_id),
            role=role.name,
            assigned_by=str(assigned_by),
        )
        return assignment

    async def remove_role(self, user_id: UUID, role_id: UUID) -> None:
        """Remove a role assignment.

        Raises:
            NotFoundError: If the user does not hold the role
        """
        assignment = await self.repo.get_assignment(user_id, role_id)
        if not assignment:
            raise NotFoundError(
                "Role assignment not found",
                resource="user_role",
                resource_id=f"{user_id}:{role_id}",
            )
        await self.repo.delete_assignment(assignment)
        logger.info("role_removed", user_id=str(user_id), role_id=str(role_id))

    async def get_user_roles(self, user_id: UUID) -> list[UserRole]:
        """Current assignments of a user, highest role level first.

        Inactive and expired assignments are left out.
        """
        now = datetime.now(UTC)
        assignments = [
            a
            for a in await self.repo.get_role_assignments(user_id)
            if is_current(a.is_active and a.role.is_active, a.expires_at, now)
        ]
        assignments.sort(key=lambda a: a.role.level, reverse=True)
        return assignments

    async def can_manage_role(self, user_id: UUID, role_id: UUID) -> bool:
        """Check if a user outranks a role.

        A user may manage only roles whose level is below the level of
        their highest current role. Users without roles and unknown roles
        answer False.
        """
        grants, _ = await self._load_grants(user_id)
        level = highest_level(grants)
        if level is None:
            return False

        role = await self.repo.get_role(role_id)
        if not role:
            return False
        return level > role.level

    # ============================================================
    # Permission overrides
    # ============================================================

    async def set_permission_override(
        self, user_id: UUID, data: PermissionOverrideSet
    ) -> UserPermission:
        """Grant or deny one catalog permission to a user directly.

        An existing override for the same permission is replaced.

        Raises:
            ValidationError: If the permission is not in the catalog
        """
        (permission,) = await self._catalog_permissions([data.permission])

        override = await self.repo.get_override(user_id, permission.id)
        if override:
            override.is_denied = data.is_denied
            override.is_active = True
            override.expires_at = data.expires_at
        else:
            override = await self.repo.add_override(
                UserPermission(
                    user_id=user_id,
                    permission_id=permission.id,
                    permission=permission,
                    is_denied=data.is_denied,
                    is_active=True,
                    expires_at=data.expires_at,
                )
            )

        logger.info(
            "permission_override_set",
            user_id=str(user_id),
            permission=permission.key,
            denied=data.is_denied,
        )
        return override

    async def remove_permission_override(self, user_id: UUID, permission_id: UUID) -> None:
        """Drop a user's override so roles alone decide again.

        Raises:
            NotFoundError: If the user has no override for the permission
        """
        override = await self.repo.get_override(user_id, permission_id)
        if not override:
            raise NotFoundError(
                "Permission override not found",
                resource="user_permission",
                resource_id=f"{user_id}:{permission_id}",
            )
        await self.repo.delete_override(override)
        logger.info(
            "permission_override_removed",
            user_id=str(user_id),
            permission_id=str(permission_id),
        )

    # ============================================================
    # Permission catalog
    # ============================================================

    async def get_permissions_by_category(self) -> dict[str, list[Permission]]:
        """Active catalog permissions grouped by category."""
        grouped: dict[str, list[Permission]] = defaultdict(list)
        for permission in await self.repo.list_permissions():
            grouped[permission.category].append(permission)
        return dict(grouped)

    async def create_permission(self, data: PermissionCreate) -> Permission:
        """Add a permission to the catalog.

        Raises:
            ConflictError: If the same resource/action/scope exists
        """
        existing = await self.repo.get_permission(data.resource, data.action, data.scope)
        if existing:
            raise ConflictError(
                "Permission already exists",
                error_code="permission_exists",
                details={"permission": existing.key},
            )

        permission = await self.repo.create_permission(
            Permission(
                resource=data.resource,
                action=data.action,
                scope=data.scope,
                category=data.category,
                description=data.description,
            )
        )
        logger.info("permission_created", permission=permission.key)
        return permission


def get_rbac_service(db: DBSession) -> RbacService:
    return RbacService(RbacRepository(db))


# Type alias for dependency injection
RbacSvc = Annotated[RbacService, Depends(get_rbac_service)]

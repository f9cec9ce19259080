"""RBAC repository for database operations."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from opsconsole.core.permissions.models import (
    Permission,
    Role,
    UserPermission,
    UserRole,
)


class RbacRepository:
    """Repository for roles, permissions and their assignments."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ============================================================
    # Roles
    # ============================================================

    async def list_roles(self) -> list[Role]:
        """All roles, highest level first."""
        result = await self.session.execute(
            select(Role).order_by(Role.level.desc(), Role.name)
        )
        return list(result.scalars().all())

    async def get_role(self, role_id: UUID) -> Role | None:
        result = await self.session.execute(select(Role).where(Role.id == role_id))
        return result.scalar_one_or_none()

    async def get_role_by_name(self, name: str) -> Role | None:
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def create_role(self, role: Role) -> Role:
        """Persist a new role.

        Args:
            role: Role instance with its permissions attached

        Returns:
            The created role with ID populated
        """
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def update_role(self, role: Role) -> Role:
        """Flush changes made to a loaded role."""
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def delete_role(self, role: Role) -> None:
        await self.session.delete(role)
        await self.session.flush()

    async def count_role_assignments(self, role_id: UUID) -> int:
        """Number of users holding a role, active or not."""
        result = await self.session.execute(
            select(func.count()).select_from(UserRole).where(UserRole.role_id == role_id)
        )
        return result.scalar_one()

    # ============================================================
    # Permissions
    # ============================================================

    async def list_permissions(self, active_only: bool = True) -> list[Permission]:
        """Catalog permissions ordered by category, resource, action."""
        stmt = select(Permission).order_by(
            Permission.category, Permission.resource, Permission.action
        )
        if active_only:
            stmt = stmt.where(Permission.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_permission(
        self, resource: str, action: str, scope: str
    ) -> Permission | None:
        result = await self.session.execute(
            select(Permission).where(
                Permission.resource == resource,
                Permission.action == action,
                Permission.scope == scope,
            )
        )
        return result.scalar_one_or_none()

    async def get_permissions_by_keys(self, keys: Iterable[str]) -> list[Permission]:
        """Catalog permissions matching canonical strings.

        Unknown keys are simply absent from the result.
        """
        wanted = set(keys)
        if not wanted:
            return []
        resources = {key.split(":", 1)[0] for key in wanted}
        result = await self.session.execute(
            select(Permission).where(Permission.resource.in_(resources))
        )
        return [p for p in result.scalars().all() if p.key in wanted]

    async def create_permission(self, permission: Permission) -> Permission:
        self.session.add(permission)
        await self.session.flush()
        await self.session.refresh(permission)
        return permission

    # ============================================================
    # Assignments
    # ============================================================

    async def get_role_assignments(self, user_id: UUID) -> list[UserRole]:
        """Every role assignment of a user, with roles and permissions loaded."""
        result = await self.session.execute(
            select(UserRole)
            .where(UserRole.user_id == user_id)
            .options(selectinload(UserRole.role).selectinload(Role.permissions))
        )
        return list(result.scalars().all())

    async def get_assignment(self, user_id: UUID, role_id: UUID) -> UserRole | None:
        result = await self.session.execute(
            select(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_assignment(self, assignment: UserRole) -> UserRole:
        self.session.add(assignment)
        await self.session.flush()
        return assignment

    async def delete_assignment(self, assignment: UserRole) -> None:
        await self.session.delete(assignment)
        await self.session.flush()

    async def get_permission_overrides(self, user_id: UUID) -> list[UserPermission]:
        """Direct permission overrides of a user."""
        result = await self.session.execute(
            select(UserPermission)
            .where(UserPermission.user_id == user_id)
            .options(selectinload(UserPermission.permission))
        )
        return list(result.scalars().all())

    async def get_override(
        self, user_id: UUID, permission_id: UUID
    ) -> UserPermission | None:
        result = await self.session.execute(
            select(UserPermission)
            .where(
                UserPermission.user_id == user_id,
                UserPermission.permission_id == permission_id,
            )
            .options(selectinload(UserPermission.permission))
        )
        return result.scalar_one_or_none()

    async def add_override(self, override: UserPermission) -> UserPermission:
        self.session.add(override)
        await self.session.flush()
        return override

    async def delete_override(self, override: UserPermission) -> None:
        await self.session.delete(override)
        await self.session.flush()

"""Permission system database models.

This module defines the RBAC tables:
- Permission: an action on a resource at a scope
- Role: a named, ranked set of permissions
- UserRole: a (possibly expiring) role assignment
- UserPermission: a per-user grant or deny override
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from opsconsole.core.constants import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PERMISSION_ACTION_LENGTH,
    MAX_PERMISSION_CATEGORY_LENGTH,
    MAX_PERMISSION_RESOURCE_LENGTH,
    MAX_PERMISSION_SCOPE_LENGTH,
    MAX_ROLE_NAME_LENGTH,
)
from opsconsole.core.database.base import (
    ActiveMixin,
    Base,
    ExpiringMixin,
    TimestampMixin,
    UUIDMixin,
)
from opsconsole.core.permissions.grammar import (
    DEFAULT_SCOPE,
    format_permission,
    validate_segment,
)


if TYPE_CHECKING:
    from opsconsole.modules.users.models import User


# Junction table for Role <-> Permission many-to-many relationship
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column(
        "role_id", Uuid, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    ),
    Column(
        "permission_id",
        Uuid,
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Permission(Base, UUIDMixin, TimestampMixin, ActiveMixin):
    """A grantable ``resource:action:scope`` permission.

    Segments are validated on assignment, so every stored row encodes
    to a well-formed canonical string. ``*`` is allowed in any segment.

    Attributes:
        resource: Protected resource (e.g., "users", "backups")
        action: Operation (e.g., "view", "manage-windows-accounts")
        scope: "own", "team", "all", ... or "*"
        category: Grouping shown in the permission editor
        description: Human-readable description
        is_active: Inactive permissions are hidden from the catalog
    """

    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint(
            "resource", "action", "scope", name="uq_permission_resource_action_scope"
        ),
    )

    resource: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_RESOURCE_LENGTH),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_ACTION_LENGTH),
        nullable=False,
    )
    scope: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_SCOPE_LENGTH),
        default=DEFAULT_SCOPE,
        nullable=False,
    )
    category: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_CATEGORY_LENGTH),
        default="general",
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        String(MAX_DESCRIPTION_LENGTH),
        nullable=True,
    )

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary=role_permissions,
        back_populates="permissions",
    )

    @validates("resource", "action", "scope")
    def _validate_segment(self, key: str, value: str) -> str:
        return validate_segment(value, key)

    @property
    def key(self) -> str:
        """Canonical ``resource:action:scope`` string."""
        return format_permission(self.resource, self.action, self.scope)

    def __repr__(self) -> str:
        return f"<Permission({self.key})>"


class Role(Base, UUIDMixin, TimestampMixin, ActiveMixin):
    """A named set of permissions.

    Attributes:
        name: Unique role name (e.g., "superadmin", "technician")
        display_name: Label shown in the admin UI
        description: Human-readable description
        level: Hierarchy rank; higher levels may manage lower ones
        is_system: Built-in role; only its permissions may change and it
            cannot be deleted
        is_active: Inactive roles grant nothing
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(MAX_ROLE_NAME_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    display_name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        String(MAX_DESCRIPTION_LENGTH),
        nullable=True,
    )
    level: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    is_system: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    permissions: Mapped[list["Permission"]] = relationship(
        "Permission",
        secondary=role_permissions,
        back_populates="roles",
        lazy="selectin",
    )

    @property
    def permission_keys(self) -> list[str]:
        """Canonical strings of the role's active permissions."""
        return sorted(p.key for p in self.permissions if p.is_active)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name}, level={self.level})>"


class UserRole(Base, TimestampMixin, ActiveMixin, ExpiringMixin):
    """Assignment of a role to a user.

    A user's role-derived permissions are the union over all active,
    unexpired assignments.
    """

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_role"),)

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    reason: Mapped[str | None] = mapped_column(
        String(MAX_DESCRIPTION_LENGTH),
        nullable=True,
    )
    assigned_by: Mapped[UUID | None] = mapped_column(
        Uuid,
        nullable=True,
    )

    role: Mapped["Role"] = relationship("Role", lazy="selectin")
    user: Mapped["User"] = relationship("User", back_populates="role_assignments")

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id})>"


class UserPermission(Base, UUIDMixin, TimestampMixin, ActiveMixin, ExpiringMixin):
    """Direct permission override for one user.

    ``is_denied`` removes the permission even when a role grants it;
    otherwise the permission is added to the user's set.
    """

    __tablename__ = "user_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "permission_id", name="uq_user_permission"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    permission_id: Mapped[UUID] = mapped_column(
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_denied: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    permission: Mapped["Permission"] = relationship("Permission", lazy="selectin")

    def __repr__(self) -> str:
        state = "deny" if self.is_denied else "grant"
        return f"<UserPermission(user_id={self.user_id}, {state})>"

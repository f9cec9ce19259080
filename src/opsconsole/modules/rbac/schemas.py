"""Pydantic schemas for RBAC administration."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from opsconsole.core.constants import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PERMISSION_ACTION_LENGTH,
    MAX_PERMISSION_CATEGORY_LENGTH,
    MAX_PERMISSION_RESOURCE_LENGTH,
    MAX_PERMISSION_SCOPE_LENGTH,
    MAX_ROLE_NAME_LENGTH,
)
from opsconsole.core.permissions.grammar import (
    DEFAULT_SCOPE,
    KNOWN_SCOPES,
    WILDCARD,
    PermissionRequirement,
    validate_permission,
    validate_segment,
)


if TYPE_CHECKING:
    from opsconsole.core.permissions.models import Role, UserPermission, UserRole


# ============================================================
# Permission Schemas
# ============================================================


class PermissionCreate(BaseModel):
    """Schema for adding a permission to the catalog."""

    resource: str = Field(..., min_length=1, max_length=MAX_PERMISSION_RESOURCE_LENGTH)
    action: str = Field(..., min_length=1, max_length=MAX_PERMISSION_ACTION_LENGTH)
    scope: str = Field(DEFAULT_SCOPE, max_length=MAX_PERMISSION_SCOPE_LENGTH)
    category: str = Field(..., min_length=1, max_length=MAX_PERMISSION_CATEGORY_LENGTH)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)

    @field_validator("resource", "action")
    @classmethod
    def segment_format(cls, v: str) -> str:
        return validate_segment(v)

    @field_validator("scope")
    @classmethod
    def known_scope(cls, v: str) -> str:
        """Scope must be a known scope or the wildcard."""
        if v not in (*KNOWN_SCOPES, WILDCARD):
            raise ValueError(f"Scope must be one of: {', '.join(KNOWN_SCOPES)}, *")
        return v


class PermissionResponse(BaseModel):
    """A catalog permission."""

    id: UUID
    resource: str
    action: str
    scope: str
    category: str
    description: str | None = None
    key: str

    model_config = ConfigDict(from_attributes=True)


# ============================================================
# Role Schemas
# ============================================================


class RoleCreate(BaseModel):
    """Schema for creating a role from catalog permission strings."""

    name: str = Field(..., min_length=1, max_length=MAX_ROLE_NAME_LENGTH)
    display_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    level: int = Field(0, ge=0)
    permissions: list[str] = []

    @field_validator("permissions")
    @classmethod
    def permission_format(cls, v: list[str]) -> list[str]:
        """Every entry must be a canonical ``resource:action:scope`` string."""
        for permission in v:
            validate_permission(permission)
        return sorted(set(v))


class RoleUpdate(BaseModel):
    """Schema for updating a role.

    Only fields present in the request are changed. ``permissions``, when
    given, replaces the role's whole permission set.
    """

    name: str | None = Field(None, min_length=1, max_length=MAX_ROLE_NAME_LENGTH)
    display_name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    level: int | None = Field(None, ge=0)
    is_active: bool | None = None
    permissions: list[str] | None = None

    @field_validator("permissions")
    @classmethod
    def permission_format(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        for permission in v:
            validate_permission(permission)
        return sorted(set(v))


class RoleClone(BaseModel):
    """Schema for copying a role under a new name."""

    name: str = Field(..., min_length=1, max_length=MAX_ROLE_NAME_LENGTH)
    display_name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)


class RoleResponse(BaseModel):
    """A role with its permissions as canonical strings."""

    id: UUID
    name: str
    display_name: str
    description: str | None = None
    level: int
    is_active: bool
    is_system: bool
    permissions: list[str]

    @classmethod
    def from_role(cls, role: "Role") -> "RoleResponse":
        return cls(
            id=role.id,
            name=role.name,
            display_name=role.display_name,
            description=role.description,
            level=role.level,
            is_active=role.is_active,
            is_system=role.is_system,
            permissions=role.permission_keys,
        )


class RoleAssign(BaseModel):
    """Schema for assigning a role to a user."""

    user_id: UUID
    role_id: UUID
    expires_at: datetime | None = None
    reason: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)


class RoleAssignmentResponse(BaseModel):
    """A role assignment."""

    user_id: UUID
    role_id: UUID
    is_active: bool
    expires_at: datetime | None = None
    reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserRoleResponse(BaseModel):
    """A current role assignment with its role summarized."""

    role_id: UUID
    name: str
    display_name: str
    level: int
    expires_at: datetime | None = None
    reason: str | None = None
    assigned_by: UUID | None = None

    @classmethod
    def from_assignment(cls, assignment: "UserRole") -> "UserRoleResponse":
        return cls(
            role_id=assignment.role_id,
            name=assignment.role.name,
            display_name=assignment.role.display_name,
            level=assignment.role.level,
            expires_at=assignment.expires_at,
            reason=assignment.reason,
            assigned_by=assignment.assigned_by,
        )


class RoleManageResponse(BaseModel):
    """Whether a user outranks a role."""

    user_id: UUID
    role_id: UUID
    can_manage: bool


# ============================================================
# Override Schemas
# ============================================================


class PermissionOverrideSet(BaseModel):
    """Schema for granting or denying one catalog permission to a user."""

    permission: str
    is_denied: bool = False
    expires_at: datetime | None = None

    @field_validator("permission")
    @classmethod
    def permission_format(cls, v: str) -> str:
        return validate_permission(v)


class PermissionOverrideResponse(BaseModel):
    """A per-user permission override."""

    user_id: UUID
    permission_id: UUID
    permission: str
    is_denied: bool
    is_active: bool
    expires_at: datetime | None = None

    @classmethod
    def from_override(cls, override: "UserPermission") -> "PermissionOverrideResponse":
        return cls(
            user_id=override.user_id,
            permission_id=override.permission_id,
            permission=override.permission.key,
            is_denied=override.is_denied,
            is_active=override.is_active,
            expires_at=override.expires_at,
        )


# ============================================================
# Effective Permission Schemas
# ============================================================


class EffectivePermissionsResponse(BaseModel):
    """A user's effective permission set.

    ``permissions`` is the flat list of canonical strings; ``grouped``
    holds the same strings keyed by resource for the UI.
    """

    user_id: UUID
    permissions: list[str]
    grouped: dict[str, list[str]]
    roles: list[str] = []


class PermissionCheckRequest(BaseModel):
    """Schema for checking one permission for a user."""

    user_id: UUID
    resource: str
    action: str
    scope: str | None = None

    @model_validator(mode="after")
    def requirement_format(self) -> "PermissionCheckRequest":
        # Raises InvalidPermissionError (a ValueError) on malformed segments
        _ = self.requirement
        return self

    @property
    def requirement(self) -> PermissionRequirement:
        return PermissionRequirement(self.resource, self.action, self.scope or DEFAULT_SCOPE)


class PermissionCheckResponse(BaseModel):
    """Result of a permission check."""

    user_id: UUID
    permission: str
    has_permission: bool

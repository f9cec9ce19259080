"""Permission system for role-based access control (RBAC)."""

from opsconsole.core.permissions.checker import (
    Combinator,
    PermissionChecker,
    is_satisfied,
)
from opsconsole.core.permissions.declarations import (
    PermissionDeclarationError,
    PermissionRegistry,
    PermissionRule,
    public,
    require_all_permissions,
    require_any_permission,
    require_permission,
)
from opsconsole.core.permissions.effective import (
    PermissionOverride,
    RoleGrant,
    compute_effective_permissions,
)
from opsconsole.core.permissions.gate import (
    AccessDecision,
    AccessOutcome,
    Authorize,
    authorize,
    evaluate_access,
)
from opsconsole.core.permissions.grammar import (
    SUPERUSER_PERMISSION,
    InvalidPermissionError,
    PermissionRequirement,
)
from opsconsole.core.permissions.visibility import PermissionView


__all__ = [
    "SUPERUSER_PERMISSION",
    # Gate
    "AccessDecision",
    "AccessOutcome",
    "Authorize",
    # Checker
    "Combinator",
    # Grammar
    "InvalidPermissionError",
    "PermissionChecker",
    # Declarations
    "PermissionDeclarationError",
    # Effective permissions
    "PermissionOverride",
    "PermissionRegistry",
    "PermissionRequirement",
    "PermissionRule",
    # Visibility
    "PermissionView",
    "RoleGrant",
    "authorize",
    "compute_effective_permissions",
    "evaluate_access",
    "is_satisfied",
    "public",
    "require_all_permissions",
    "require_any_permission",
    "require_permission",
]

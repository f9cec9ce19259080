"""Permission rules for RBAC administration operations."""

from opsconsole.core.permissions.declarations import PermissionRule, require_permission


permission_rules: dict[str, PermissionRule] = {
    "rbac.roles.list": require_permission("roles", "view"),
    "rbac.roles.create": require_permission("roles", "create"),
    "rbac.roles.update": require_permission("roles", "update"),
    "rbac.roles.delete": require_permission("roles", "delete"),
    "rbac.roles.clone": require_permission("roles", "create"),
    "rbac.roles.assign": require_permission("roles", "assign"),
    "rbac.roles.unassign": require_permission("roles", "assign"),
    "rbac.roles.can_manage": require_permission("roles", "view"),
    "rbac.users.roles": require_permission("roles", "view"),
    "rbac.users.permissions": require_permission("permissions", "view"),
    "rbac.users.overrides.set": require_permission("permissions", "assign"),
    "rbac.users.overrides.remove": require_permission("permissions", "assign"),
    "rbac.permissions.list": require_permission("permissions", "view"),
    "rbac.permissions.create": require_permission("permissions", "create"),
    "rbac.permissions.check": require_permission("permissions", "view"),
}

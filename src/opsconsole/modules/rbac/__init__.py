"""RBAC administration module."""

from opsconsole.modules.rbac.permissions import permission_rules
from opsconsole.modules.rbac.routes import router


__all__ = ["permission_rules", "router"]

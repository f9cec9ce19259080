"""Client-side visibility gate.

``PermissionView`` answers "should this control be shown?" from a
permission set fetched once from the server. It uses the same matcher as
the server gate, so a control is never shown for an operation the server
would reject. It only affects presentation; the server gate is the sole
enforcement point.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from opsconsole.core.permissions.checker import PermissionChecker
from opsconsole.core.permissions.declarations import PermissionRule
from opsconsole.core.permissions.grammar import format_permission


def _permission_key(item: str | Mapping[str, Any]) -> str:
    if isinstance(item, str):
        return item
    return format_permission(item["resource"], item["action"], item.get("scope"))


def flatten_permissions(payload: Any) -> list[str]:
    """Flatten a permissions payload into canonical strings.

    Accepts a list of strings, a list of ``{resource, action, scope}``
    objects, or a mapping of category to either of those.
    """
    if isinstance(payload, Mapping):
        flat: list[str] = []
        for items in payload.values():
            flat.extend(_permission_key(item) for item in items)
        return flat
    return [_permission_key(item) for item in payload]


class PermissionView:
    """Synchronous permission predicate for one caller.

    Attributes:
        authenticated: False for an anonymous view, which denies everything
        roles: Role names of the caller
    """

    def __init__(
        self,
        permissions: Iterable[str] = (),
        roles: Iterable[str] = (),
        authenticated: bool = True,
    ) -> None:
        self._checker = PermissionChecker(permissions)
        self.roles = tuple(roles)
        self.authenticated = authenticated

    @classmethod
    def anonymous(cls) -> "PermissionView":
        return cls(authenticated=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PermissionView":
        """Build a view from a ``/rbac/me/permissions`` response body.

        Uses the flat ``permissions`` list when present, otherwise the
        ``grouped`` mapping.
        """
        if payload.get("permissions") is not None:
            permissions = flatten_permissions(payload["permissions"])
        else:
            permissions = flatten_permissions(payload.get("grouped") or {})
        return cls(permissions, roles=payload.get("roles") or ())

    @property
    def permissions(self) -> frozenset[str]:
        return self._checker.granted

    def can(self, resource: str, action: str, scope: str | None = None) -> bool:
        """Check if a control for ``resource:action:scope`` should be shown.

        Scope defaults to ``all``, like on the server. Segments the server
        could never declare (uppercase, empty, ``*``) answer False.
        """
        if not self.authenticated:
            return False
        return self._checker.has_permission(resource, action, scope)

    def allows(self, rule: PermissionRule) -> bool:
        """Check a whole rule with the server's combinator and superuser logic.

        The public flag is a routing concern and is ignored here.
        """
        if not rule.requirements:
            return True
        if not self.authenticated:
            return False
        if self._checker.is_superuser:
            return True
        return self._checker.check(rule.requirements, rule.combinator)

    def has_role(self, role_name: str) -> bool:
        return role_name in self.roles

"""Permission declarations for protected operations.

Operations declare what they require as plain data. A ``PermissionRule``
is built with one of the helpers below and registered under an operation
id when the application starts:

    registry = PermissionRegistry()
    registry.register("users.delete", require_permission("users", "delete"))
    registry.register(
        "backups.restore",
        require_all_permissions("backups:restore:all", "audit:create:all"),
    )
    registry.register("health.live", public())

Routes then reference the operation id through the ``Authorize``
dependency in ``opsconsole.core.permissions.gate``.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

import structlog

from opsconsole.core.permissions.checker import Combinator
from opsconsole.core.permissions.grammar import (
    DEFAULT_SCOPE,
    PermissionRequirement,
    RequirementLike,
    as_requirement,
)


logger = structlog.get_logger()

GROUP_SEPARATOR = "."


class PermissionDeclarationError(Exception):
    """Raised when permission metadata is declared inconsistently."""


@dataclass(frozen=True)
class PermissionRule:
    """Authorization metadata for one operation.

    Attributes:
        requirements: Ordered requirements, empty means "no restriction"
        combinator: ANY (default) or ALL
        public: Skip every check, including authentication
    """

    requirements: tuple[PermissionRequirement, ...] = ()
    combinator: Combinator = Combinator.ANY
    public: bool = False

    @property
    def require_all(self) -> bool:
        return self.combinator is Combinator.ALL

    @property
    def keys(self) -> list[str]:
        return [req.key for req in self.requirements]


def require_permission(
    resource: str,
    action: str,
    scope: str = DEFAULT_SCOPE,
) -> PermissionRule:
    """Require a single permission.

    Usage:
        registry.register("users.create", require_permission("users", "create"))

    Raises:
        InvalidPermissionError: If any segment is malformed
    """
    return PermissionRule(requirements=(PermissionRequirement(resource, action, scope),))


def require_any_permission(*requirements: RequirementLike) -> PermissionRule:
    """Require at least one of the given permissions (OR)."""
    return PermissionRule(
        requirements=tuple(as_requirement(req) for req in requirements),
        combinator=Combinator.ANY,
    )


def require_all_permissions(*requirements: RequirementLike) -> PermissionRule:
    """Require every one of the given permissions (AND)."""
    return PermissionRule(
        requirements=tuple(as_requirement(req) for req in requirements),
        combinator=Combinator.ALL,
    )


def public(rule: PermissionRule | None = None) -> PermissionRule:
    """Mark an operation as public.

    Any requirements on ``rule`` are kept but never evaluated.
    """
    if rule is None:
        return PermissionRule(public=True)
    return PermissionRule(
        requirements=rule.requirements,
        combinator=rule.combinator,
        public=True,
    )


NO_RESTRICTION = PermissionRule()


@dataclass
class PermissionRegistry:
    """Operation id to ``PermissionRule`` mapping, built at startup.

    Resolution is most-specific-wins: an exact operation rule, then the
    rule of the longest registered group prefix ("rbac.roles" for
    "rbac.roles.create"), then no restriction.
    """

    _rules: dict[str, PermissionRule] = field(default_factory=dict)
    _groups: dict[str, PermissionRule] = field(default_factory=dict)

    def register(self, operation_id: str, rule: PermissionRule) -> PermissionRule:
        """Register the rule for one operation.

        Raises:
            PermissionDeclarationError: If the operation already has a rule
        """
        if operation_id in self._rules:
            raise PermissionDeclarationError(
                f"Permissions already declared for operation {operation_id!r}"
            )
        if rule.public and rule.requirements:
            logger.warning(
                "public_rule_has_requirements",
                operation=operation_id,
                requirements=rule.keys,
            )
        self._rules[operation_id] = rule
        return rule

    def register_many(self, rules: Mapping[str, PermissionRule]) -> None:
        for operation_id, rule in rules.items():
            self.register(operation_id, rule)

    def register_group(self, prefix: str, rule: PermissionRule) -> PermissionRule:
        """Register a default rule for every operation under ``prefix``.

        Raises:
            PermissionDeclarationError: If the group already has a rule
        """
        if prefix in self._groups:
            raise PermissionDeclarationError(
                f"Permissions already declared for group {prefix!r}"
            )
        self._groups[prefix] = rule
        return rule

    def _group_rule(self, operation_id: str) -> PermissionRule | None:
        prefix = operation_id
        while GROUP_SEPARATOR in prefix:
            prefix = prefix.rsplit(GROUP_SEPARATOR, 1)[0]
            if prefix in self._groups:
                return self._groups[prefix]
        return None

    def resolve(self, operation_id: str) -> PermissionRule:
        """Return the effective rule for an operation."""
        rule = self._rules.get(operation_id)
        if rule is None:
            rule = self._group_rule(operation_id)
        return NO_RESTRICTION if rule is None else rule

    def covers(self, operation_id: str) -> bool:
        """True if an operation or one of its groups has a declared rule."""
        return operation_id in self._rules or self._group_rule(operation_id) is not None

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._rules

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

"""Permission checking logic.

This module decides whether a granted permission set satisfies declared
requirements. Matching is plain set membership against the requirement's
canonical string and four wildcard templates. There is no scope
hierarchy: ``users:update:all`` does not satisfy ``users:update:own``.
"""

from collections.abc import Iterable, Sequence
from enum import Enum

from opsconsole.core.permissions.grammar import (
    SUPERUSER_PERMISSION,
    InvalidPermissionError,
    PermissionRequirement,
    RequirementLike,
    as_requirement,
)


class Combinator(str, Enum):
    """How a list of requirements is reduced to one answer."""

    ANY = "any"
    ALL = "all"


def is_satisfied(granted: frozenset[str] | set[str], requirement: PermissionRequirement) -> bool:
    """Check a single requirement against a granted set."""
    if requirement.key in granted:
        return True
    return any(key in granted for key in requirement.wildcard_keys())


class PermissionChecker:
    """Evaluates requirements against one caller's granted permissions.

    The granted set is materialized once; every check after that is
    in-memory and never performs I/O.
    """

    def __init__(self, granted: Iterable[str]) -> None:
        self.granted = frozenset(granted)

    @property
    def is_superuser(self) -> bool:
        """True if the set holds the universal wildcard."""
        return SUPERUSER_PERMISSION in self.granted

    def has_permission(
        self,
        resource: str,
        action: str,
        scope: str | None = None,
    ) -> bool:
        """Check if the granted set allows an action.

        Args:
            resource: The resource to check (e.g., "users")
            action: The action to check (e.g., "view", "delete")
            scope: The scope to check, ``all`` when omitted

        Returns:
            True if satisfied exactly or through a wildcard. A query that
            is not a valid requirement is never satisfied.
        """
        try:
            requirement = PermissionRequirement(resource, action, scope or "all")
        except InvalidPermissionError:
            return False
        return is_satisfied(self.granted, requirement)

    def satisfies(self, requirement: RequirementLike) -> bool:
        return is_satisfied(self.granted, as_requirement(requirement))

    def has_any_permission(self, requirements: Iterable[RequirementLike]) -> bool:
        """True if at least one requirement is met, or none are declared."""
        checked = False
        for requirement in requirements:
            checked = True
            if self.satisfies(requirement):
                return True
        return not checked

    def has_all_permissions(self, requirements: Iterable[RequirementLike]) -> bool:
        """True if every requirement is met."""
        return all(self.satisfies(requirement) for requirement in requirements)

    def check(
        self,
        requirements: Sequence[RequirementLike],
        combinator: Combinator = Combinator.ANY,
    ) -> bool:
        """Reduce a requirement list with the given combinator."""
        if combinator is Combinator.ALL:
            return self.has_all_permissions(requirements)
        return self.has_any_permission(requirements)

    def missing(
        self,
        requirements: Sequence[RequirementLike],
    ) -> list[PermissionRequirement]:
        """Requirements the granted set does not satisfy, in declared order."""
        return [
            req
            for req in map(as_requirement, requirements)
            if not is_satisfied(self.granted, req)
        ]

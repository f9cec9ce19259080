"""Unit tests for permission checker.

These tests verify the PermissionChecker logic including:
- Exact matches
- The four wildcard templates
- ANY / ALL combinators
- Missing-requirement reporting
"""

import itertools

import pytest

from opsconsole.core.permissions.checker import Combinator, PermissionChecker, is_satisfied
from opsconsole.core.permissions.grammar import PermissionRequirement


pytestmark = pytest.mark.unit

RESOURCES = ("users", "roles", "backups", "audit", "windows")
ACTIONS = ("view", "create", "update", "delete", "manage-windows-accounts")
SCOPES = ("own", "team", "department", "all")


class TestExactMatch:
    """Tests for exact permission strings."""

    def test_exact_string_satisfies(self):
        checker = PermissionChecker({"users:view:all"})
        assert checker.has_permission("users", "view", "all")

    def test_scope_defaults_to_all(self):
        checker = PermissionChecker({"users:view:all"})
        assert checker.has_permission("users", "view")

    def test_empty_set_satisfies_nothing(self):
        assert not PermissionChecker(()).has_permission("users", "view")

    def test_no_implicit_scope_hierarchy(self):
        """``all`` does not imply ``own``."""
        checker = PermissionChecker({"users:update:all"})

        assert not checker.has_permission("users", "update", "own")

    def test_narrower_scope_does_not_imply_all(self):
        checker = PermissionChecker({"users:update:own"})

        assert not checker.has_permission("users", "update", "all")

    @pytest.mark.parametrize(
        ("resource", "action", "scope"),
        [("Users", "view", None), ("users", "", None), ("*", "view", None), ("users", "view", "*")],
    )
    def test_malformed_query_is_not_satisfied(self, resource, action, scope):
        checker = PermissionChecker({"*:*:*", "users:view:all"})

        assert not checker.has_permission(resource, action, scope)


class TestWildcards:
    """Tests for wildcard grants."""

    def test_universal_wildcard_satisfies_everything(self):
        """``*:*:*`` satisfies every triple."""
        checker = PermissionChecker({"*:*:*"})

        for resource, action, scope in itertools.product(RESOURCES, ACTIONS, SCOPES):
            assert checker.has_permission(resource, action, scope)

    def test_resource_wildcard(self):
        checker = PermissionChecker({"users:*:*"})

        assert checker.has_permission("users", "create", "all")
        assert checker.has_permission("users", "delete", "own")
        assert not checker.has_permission("roles", "view", "all")

    def test_action_wildcard(self):
        checker = PermissionChecker({"*:view:*"})

        assert checker.has_permission("users", "view", "own")
        assert checker.has_permission("backups", "view", "all")
        assert not checker.has_permission("users", "create", "all")

    def test_scope_wildcard(self):
        checker = PermissionChecker({"users:update:*"})

        assert checker.has_permission("users", "update", "own")
        assert checker.has_permission("users", "update", "all")
        assert not checker.has_permission("users", "delete", "own")

    @pytest.mark.parametrize("granted", ["users:*:own", "*:*:own", "*:view:all"])
    def test_unsupported_wildcard_shapes_do_not_match(self, granted: str):
        """Only the four wildcard templates are honored."""
        checker = PermissionChecker({granted})

        assert not checker.has_permission("users", "view", "own")

    def test_is_superuser(self):
        assert PermissionChecker({"*:*:*"}).is_superuser
        assert not PermissionChecker({"users:*:*"}).is_superuser


class TestIsSatisfied:
    """Tests for the is_satisfied helper."""

    def test_exact(self):
        requirement = PermissionRequirement("audit", "create")
        assert is_satisfied(frozenset({"audit:create:all"}), requirement)

    def test_unrelated(self):
        requirement = PermissionRequirement("audit", "create")
        assert not is_satisfied(frozenset({"audit:view:all"}), requirement)


class TestCombinators:
    """Tests for ANY / ALL reduction."""

    A = PermissionRequirement("backups", "create")
    B = PermissionRequirement("audit", "create")

    def test_any_passes_when_only_second_satisfied(self):
        checker = PermissionChecker({self.B.key})

        assert checker.check([self.A, self.B], Combinator.ANY)

    def test_any_fails_when_none_satisfied(self):
        checker = PermissionChecker({"users:view:all"})

        assert not checker.check([self.A, self.B], Combinator.ANY)

    def test_all_fails_when_only_second_satisfied(self):
        checker = PermissionChecker({self.B.key})

        assert not checker.check([self.A, self.B], Combinator.ALL)

    def test_all_passes_when_every_requirement_satisfied(self):
        checker = PermissionChecker({self.A.key, self.B.key})

        assert checker.check([self.A, self.B], Combinator.ALL)

    def test_default_combinator_is_any(self):
        checker = PermissionChecker({self.A.key})

        assert checker.check([self.A, self.B])

    def test_empty_requirements_pass_for_both_combinators(self):
        checker = PermissionChecker(())

        assert checker.check([], Combinator.ANY)
        assert checker.check([], Combinator.ALL)

    def test_accepts_strings_and_tuples(self):
        checker = PermissionChecker({"audit:create:all"})

        assert checker.has_any_permission(["backups:create", ("audit", "create")])
        assert not checker.has_all_permissions(["backups:create", ("audit", "create")])


class TestMissing:
    """Tests for PermissionChecker.missing."""

    def test_lists_unmet_in_declared_order(self):
        checker = PermissionChecker({"roles:view:all"})

        missing = checker.missing(["users:delete", "roles:view", "audit:create"])

        assert [req.key for req in missing] == ["users:delete:all", "audit:create:all"]

    def test_empty_when_everything_met(self):
        checker = PermissionChecker({"users:*:*"})

        assert checker.missing(["users:delete", "users:view:own"]) == []

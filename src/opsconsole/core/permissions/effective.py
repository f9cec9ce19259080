"""Effective permission calculation.

A caller's granted set is computed once, when they authenticate:

1. the union of the permissions of every active, unexpired role
   assignment whose role is itself active
2. direct user overrides applied on top: a denied override removes the
   permission, a granted one adds it

The result is a frozen set of canonical strings attached to the caller.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class RoleGrant:
    """A role assigned to a user, flattened to its permission strings."""

    role_name: str
    permissions: tuple[str, ...]
    level: int = 0
    is_active: bool = True
    expires_at: datetime | None = None


@dataclass(frozen=True)
class PermissionOverride:
    """A permission granted to or denied from one user directly."""

    permission: str
    is_denied: bool = False
    is_active: bool = True
    expires_at: datetime | None = None


def is_current(is_active: bool, expires_at: datetime | None, now: datetime | None = None) -> bool:
    """True for an active grant that has not expired."""
    if not is_active:
        return False
    if expires_at is None:
        return True
    now = now or datetime.now(UTC)
    # Naive timestamps are stored as UTC
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at >= now


def compute_effective_permissions(
    grants: Iterable[RoleGrant],
    overrides: Iterable[PermissionOverride] = (),
    now: datetime | None = None,
) -> frozenset[str]:
    """Aggregate role grants and overrides into a granted set.

    Args:
        grants: Role assignments of the user
        overrides: Direct per-user permission overrides
        now: Reference time for expiry checks, defaults to the current time

    Returns:
        Canonical permission strings the user holds
    """
    now = now or datetime.now(UTC)
    permissions: set[str] = set()

    for grant in grants:
        if is_current(grant.is_active, grant.expires_at, now):
            permissions.update(grant.permissions)

    for override in overrides:
        if not is_current(override.is_active, override.expires_at, now):
            continue
        if override.is_denied:
            permissions.discard(override.permission)
        else:
            permissions.add(override.permission)

    return frozenset(permissions)


def active_role_names(grants: Iterable[RoleGrant], now: datetime | None = None) -> tuple[str, ...]:
    """Names of current roles, highest level first."""
    now = now or datetime.now(UTC)
    current = [g for g in grants if is_current(g.is_active, g.expires_at, now)]
    current.sort(key=lambda g: g.level, reverse=True)
    return tuple(g.role_name for g in current)


def highest_level(grants: Iterable[RoleGrant], now: datetime | None = None) -> int | None:
    """Level of the user's highest current role, None without roles."""
    now = now or datetime.now(UTC)
    levels = [g.level for g in grants if is_current(g.is_active, g.expires_at, now)]
    return max(levels, default=None)

"""Permission string grammar.

Permissions are encoded as ``resource:action:scope`` strings:

- resource: the protected object class (e.g. "users", "backups")
- action: the operation (e.g. "view", "delete", "manage-windows-accounts")
- scope: how broadly the action applies ("own", "team", "all", ...)

``*`` is the only wildcard token. Granted permissions may use it in any
segment; declared requirements never do.
"""

import re
from dataclasses import dataclass


WILDCARD = "*"
DEFAULT_SCOPE = "all"
SEPARATOR = ":"
SUPERUSER_PERMISSION = "*:*:*"

# Scopes accepted when creating catalog permissions through the API
KNOWN_SCOPES = ("own", "team", "department", "all")

_SEGMENT_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class InvalidPermissionError(ValueError):
    """Raised when a permission or requirement string is malformed."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid permission {value!r}: {reason}")


def _check_segment(value: str, name: str, segment: str, allow_wildcard: bool) -> None:
    if segment == WILDCARD:
        if not allow_wildcard:
            raise InvalidPermissionError(value, f"wildcard not allowed in {name}")
        return
    if not _SEGMENT_RE.match(segment):
        raise InvalidPermissionError(
            value,
            f"{name} must be lowercase letters, digits, '-' or '_'",
        )


def validate_segment(segment: str, name: str = "segment") -> str:
    """Validate one stored segment; ``*`` is accepted."""
    _check_segment(segment, name, segment, allow_wildcard=True)
    return segment


def validate_permission(value: str) -> str:
    """Validate a granted permission string.

    Wildcards are allowed in every segment.

    Args:
        value: Canonical permission string

    Returns:
        The same string, unchanged

    Raises:
        InvalidPermissionError: If the string is not three valid segments
    """
    parts = value.split(SEPARATOR)
    if len(parts) != 3:
        raise InvalidPermissionError(value, "expected resource:action:scope")
    for name, segment in zip(("resource", "action", "scope"), parts, strict=True):
        _check_segment(value, name, segment, allow_wildcard=True)
    return value


def format_permission(resource: str, action: str, scope: str | None = None) -> str:
    """Build the canonical string, defaulting scope to ``all``."""
    return SEPARATOR.join((resource, action, scope or DEFAULT_SCOPE))


@dataclass(frozen=True)
class PermissionRequirement:
    """A permission a protected operation asks for.

    Attributes:
        resource: Resource identifier
        action: Action identifier
        scope: Scope, ``all`` when omitted
    """

    resource: str
    action: str
    scope: str = DEFAULT_SCOPE

    def __post_init__(self) -> None:
        if not self.scope:
            object.__setattr__(self, "scope", DEFAULT_SCOPE)
        key = self.key
        _check_segment(key, "resource", self.resource, allow_wildcard=False)
        _check_segment(key, "action", self.action, allow_wildcard=False)
        _check_segment(key, "scope", self.scope, allow_wildcard=False)

    @property
    def key(self) -> str:
        """Canonical ``resource:action:scope`` form."""
        return format_permission(self.resource, self.action, self.scope)

    def wildcard_keys(self) -> tuple[str, str, str, str]:
        """Granted strings that satisfy this requirement besides ``key``."""
        return (
            SUPERUSER_PERMISSION,
            f"{self.resource}:*:*",
            f"{self.resource}:{self.action}:*",
            f"*:{self.action}:*",
        )

    @classmethod
    def parse(cls, value: str) -> "PermissionRequirement":
        """Parse ``resource:action`` or ``resource:action:scope``.

        Raises:
            InvalidPermissionError: If the string is malformed
        """
        parts = value.split(SEPARATOR)
        if len(parts) not in (2, 3):
            raise InvalidPermissionError(value, "expected resource:action[:scope]")
        return cls(*parts)

    def __str__(self) -> str:
        return self.key


RequirementLike = PermissionRequirement | str | tuple[str, str] | tuple[str, str, str]


def as_requirement(value: RequirementLike) -> PermissionRequirement:
    """Coerce a string, tuple or requirement into a ``PermissionRequirement``."""
    if isinstance(value, PermissionRequirement):
        return value
    if isinstance(value, str):
        return PermissionRequirement.parse(value)
    return PermissionRequirement(*value)

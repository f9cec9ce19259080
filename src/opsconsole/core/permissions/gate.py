"""Server-side authorization gate.

Every guarded request goes through the same decision sequence before its
handler runs:

1. public rule            -> allow
2. no requirements        -> allow
3. no caller              -> unauthenticated (401)
4. caller holds *:*:*     -> allow
5. combinator satisfied   -> allow, otherwise forbidden (403)

``evaluate_access`` is the pure decision. ``authorize`` turns a denial
into an exception, and ``Authorize`` wires both into FastAPI routes.
"""

from collections.abc import Iterable
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any

import structlog
from fastapi import Depends, Request
from starlette.routing import BaseRoute

from opsconsole.core.auth.dependencies import get_optional_caller
from opsconsole.core.auth.schemas import Caller
from opsconsole.core.errors import PermissionDeniedError, UnauthorizedError
from opsconsole.core.permissions.checker import PermissionChecker
from opsconsole.core.permissions.declarations import PermissionDeclarationError, PermissionRule
from opsconsole.core.permissions.grammar import PermissionRequirement


if TYPE_CHECKING:
    from opsconsole.core.permissions.declarations import PermissionRegistry


logger = structlog.get_logger()


class AccessOutcome(str, Enum):
    """Terminal states of the gate."""

    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AccessDecision:
    """Result of evaluating a rule for a caller.

    Attributes:
        outcome: Terminal state reached
        reason: Short machine-readable reason, used in logs
        missing: Unmet requirements (forbidden only)
    """

    outcome: AccessOutcome
    reason: str
    missing: tuple[PermissionRequirement, ...] = ()

    @property
    def allowed(self) -> bool:
        return self.outcome is AccessOutcome.ALLOW


def _log(method: str, event: str, **kwargs: Any) -> None:
    # Logging is best-effort and must not change the decision
    with suppress(Exception):
        getattr(logger, method)(event, **kwargs)


def evaluate_access(rule: PermissionRule, caller: Caller | None) -> AccessDecision:
    """Decide whether ``caller`` may run an operation guarded by ``rule``.

    Args:
        rule: The operation's resolved permission rule
        caller: The authenticated caller, or None if there is none

    Returns:
        The access decision; never raises for a denial
    """
    if rule.public:
        return AccessDecision(AccessOutcome.ALLOW, "public")

    if not rule.requirements:
        return AccessDecision(AccessOutcome.ALLOW, "no_requirements")

    if caller is None:
        return AccessDecision(AccessOutcome.UNAUTHENTICATED, "no_caller")

    checker = PermissionChecker(caller.permissions)

    _log(
        "debug",
        "permission_check",
        user_id=str(caller.id),
        required=rule.keys,
        combinator=rule.combinator.value,
        granted=sorted(checker.granted),
    )

    if checker.is_superuser:
        return AccessDecision(AccessOutcome.ALLOW, "superuser")

    if checker.check(rule.requirements, rule.combinator):
        return AccessDecision(AccessOutcome.ALLOW, "granted")

    return AccessDecision(
        AccessOutcome.FORBIDDEN,
        "missing_permissions",
        missing=tuple(checker.missing(rule.requirements)),
    )


def authorize(
    rule: PermissionRule,
    caller: Caller | None,
    operation: str | None = None,
) -> AccessDecision:
    """Evaluate ``rule`` and raise on denial.

    Args:
        rule: The operation's resolved permission rule
        caller: The authenticated caller, or None
        operation: Operation id, for logs only

    Returns:
        The allowing decision

    Raises:
        UnauthorizedError: If requirements exist and there is no caller
        PermissionDeniedError: If the caller's permissions do not satisfy the rule
    """
    decision = evaluate_access(rule, caller)

    if decision.outcome is AccessOutcome.UNAUTHENTICATED:
        raise UnauthorizedError()

    if decision.outcome is AccessOutcome.FORBIDDEN:
        missing = [req.key for req in decision.missing]
        _log(
            "warning",
            "permission_denied",
            user_id=str(caller.id) if caller else None,
            operation=operation,
            missing=missing,
        )
        raise PermissionDeniedError(missing)

    return decision


class Authorize:
    """FastAPI dependency guarding a route by operation id.

    The rule is looked up in the ``PermissionRegistry`` stored on
    ``app.state.permissions`` at startup.

    Usage:
        @router.delete(
            "/roles/{role_id}",
            dependencies=[Depends(Authorize("rbac.roles.delete"))],
        )
        async def delete_role(role_id: UUID) -> None:
            ...
    """

    def __init__(self, operation_id: str) -> None:
        self.operation_id = operation_id

    async def __call__(
        self,
        request: Request,
        caller: Annotated[Caller | None, Depends(get_optional_caller)],
    ) -> Caller | None:
        registry: PermissionRegistry = request.app.state.permissions
        rule = registry.resolve(self.operation_id)
        authorize(rule, caller, operation=self.operation_id)
        return caller


def guarded_operations(routes: Iterable[BaseRoute]) -> list[str]:
    """Operation ids of every ``Authorize`` dependency on the given routes."""
    operation_ids: list[str] = []
    for route in routes:
        for dependency in getattr(route, "dependencies", ()):
            if isinstance(dependency.dependency, Authorize):
                operation_ids.append(dependency.dependency.operation_id)
    return operation_ids


def check_route_declarations(
    routes: Iterable[BaseRoute], registry: "PermissionRegistry"
) -> None:
    """Fail when a route is guarded by an operation id nothing declares.

    An undeclared id would resolve to no restriction, so a misspelled id
    would leave the route open.

    Raises:
        PermissionDeclarationError: Listing every undeclared operation id
    """
    undeclared = sorted(
        {op for op in guarded_operations(routes) if not registry.covers(op)}
    )
    if undeclared:
        raise PermissionDeclarationError(
            f"Routes guarded by undeclared operations: {', '.join(undeclared)}"
        )

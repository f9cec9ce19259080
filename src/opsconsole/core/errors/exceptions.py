"""Domain exceptions for the console API.

Every exception here is rendered as an RFC 7807 Problem Details response
by the handlers in ``opsconsole.core.errors.handlers``.
"""

from collections.abc import Sequence
from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Extra fields merged into the problem document
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a role, permission or user does not exist.

    Example:
        raise NotFoundError("Role not found", resource="role", resource_id=str(role_id))
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    """Raised when a write collides with existing data (duplicate role name)."""

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class ValidationError(AppException):
    """Raised when a payload passes schema checks but breaks a domain rule."""

    message = "Validation error"
    error_code = "validation_error"
    status_code = 422

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class UnauthorizedError(AppException):
    """Raised when a guarded operation is called without a verified caller.

    Never retried: the caller has to authenticate again.
    """

    message = "User not authenticated"
    error_code = "unauthenticated"
    status_code = 401


class ForbiddenError(AppException):
    """Raised when an authenticated caller may not perform an operation."""

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class PermissionDeniedError(ForbiddenError):
    """Raised by the authorization gate with the unmet permissions.

    The message lists them comma-separated and the problem document
    carries them as ``missing_permissions``.

    Example:
        raise PermissionDeniedError(["users:delete:all"])
        # detail: "Missing required permissions: users:delete:all"
    """

    error_code = "permission_denied"

    def __init__(self, missing: Sequence[str], **kwargs: Any) -> None:
        self.missing = list(missing)
        super().__init__(
            message=f"Missing required permissions: {', '.join(self.missing)}",
            details={"missing_permissions": self.missing},
            **kwargs,
        )

"""Authentication: JWT tokens and caller context."""

from opsconsole.core.auth.backend import create_access_token, decode_token
from opsconsole.core.auth.dependencies import (
    CurrentCaller,
    OptionalCaller,
    get_current_caller,
    get_optional_caller,
)
from opsconsole.core.auth.middleware import RequestIdMiddleware
from opsconsole.core.auth.schemas import Caller, TokenData


__all__ = [
    # Schemas
    "Caller",
    # Dependencies
    "CurrentCaller",
    "OptionalCaller",
    # Middleware
    "RequestIdMiddleware",
    "TokenData",
    # Token utilities
    "create_access_token",
    "decode_token",
    "get_current_caller",
    "get_optional_caller",
]

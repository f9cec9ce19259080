"""FastAPI dependencies for authentication.

This module builds the ``Caller`` a request acts on behalf of:
- extracting and validating the bearer token
- loading the user
- computing the user's effective permissions once per request
"""

from typing import Annotated

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from opsconsole.api.dependencies import DBSession
from opsconsole.core.auth.backend import decode_token
from opsconsole.core.auth.schemas import Caller
from opsconsole.core.errors import UnauthorizedError


logger = structlog.get_logger()

# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: DBSession,
) -> Caller | None:
    """Get the authenticated caller, or None.

    Missing, invalid or expired tokens, unknown users and deactivated
    users all produce None; guarded routes turn that into a 401.

    Args:
        credentials: Optional bearer token credentials
        db: Database session

    Returns:
        Caller with effective permissions, or None
    """
    if not credentials:
        return None

    token_data = decode_token(credentials.credentials)
    if not token_data or token_data.type != "access":
        logger.info("invalid_access_token")
        return None

    from opsconsole.modules.rbac.repos import RbacRepository  # noqa: PLC0415
    from opsconsole.modules.rbac.services import RbacService  # noqa: PLC0415
    from opsconsole.modules.users.repos import UserRepository  # noqa: PLC0415

    user = await UserRepository(db).get_by_id(token_data.user_id)
    if not user or not user.is_active:
        logger.info("caller_unavailable", user_id=str(token_data.user_id))
        return None

    caller = await RbacService(RbacRepository(db)).build_caller(user)
    structlog.contextvars.bind_contextvars(user_id=str(caller.id))
    return caller


async def get_current_caller(
    caller: Annotated[Caller | None, Depends(get_optional_caller)],
) -> Caller:
    """Get the authenticated caller.

    Raises:
        UnauthorizedError: If the request carries no valid credentials
    """
    if caller is None:
        raise UnauthorizedError()
    return caller


# Type aliases for cleaner dependency injection
OptionalCaller = Annotated[Caller | None, Depends(get_optional_caller)]
CurrentCaller = Annotated[Caller, Depends(get_current_caller)]

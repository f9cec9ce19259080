"""Authentication schemas for tokens and caller context."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class TokenData(BaseModel):
    """Data extracted from a JWT access token.

    Attributes:
        user_id: The user's UUID
        exp: Token expiration time
        type: Token type
    """

    user_id: UUID
    exp: datetime
    type: str = "access"


class Caller(BaseModel):
    """The authenticated caller a request acts on behalf of.

    ``permissions`` is the effective permission set computed at
    authentication; it does not change for the lifetime of the request.

    Attributes:
        id: The user's UUID
        username: Login name, used in logs
        permissions: Canonical ``resource:action:scope`` strings
        roles: Names of the caller's active roles
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    username: str
    permissions: frozenset[str] = frozenset()
    roles: tuple[str, ...] = ()

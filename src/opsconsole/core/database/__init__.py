"""Database layer - session management and base models."""

from opsconsole.core.database.base import (
    ActiveMixin,
    Base,
    ExpiringMixin,
    TimestampMixin,
    UUIDMixin,
)
from opsconsole.core.database.session import (
    async_engine,
    async_session_factory,
    get_db,
)


__all__ = [
    "ActiveMixin",
    "Base",
    "ExpiringMixin",
    "TimestampMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "get_db",
]

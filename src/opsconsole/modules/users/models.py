"""User database models."""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opsconsole.core.constants import (
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_USERNAME_LENGTH,
)
from opsconsole.core.database.base import ActiveMixin, Base, TimestampMixin, UUIDMixin


if TYPE_CHECKING:
    from opsconsole.core.permissions.models import UserPermission, UserRole


class User(Base, UUIDMixin, TimestampMixin, ActiveMixin):
    """A console operator.

    Attributes:
        username: Unique login name
        email: Contact address
        full_name: Display name
        is_active: Whether the user can authenticate
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(MAX_USERNAME_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(MAX_EMAIL_LENGTH),
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(MAX_NAME_LENGTH),
        nullable=False,
    )

    role_assignments: Mapped[list["UserRole"]] = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    permission_overrides: Mapped[list["UserPermission"]] = relationship(
        "UserPermission",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"

"""User model for Collybrix.

Project-management metadata for people who sign in through the identity
provider. A user can be addressed either by its UUID or by its identity
provider id (``external_id``, e.g. ``user_2abc123``).
"""

from __future__ import annotations

import enum

from sqlalchemy import Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column

from collybrix.database.models.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    """Role of a user within the agency."""

    admin = "admin"
    project_manager = "project_manager"
    developer = "developer"
    designer = "designer"
    qa = "qa"


class User(TimestampMixin, Base):
    """A team member.

    Attributes:
        name: Display name.
        email: Unique email address, stored lowercase.
        role: UserRole value.
        is_active: False once the user has been deactivated.
        avatar_url: Optional avatar image URL.
        external_id: Optional identity provider user id.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    role: Mapped[UserRole] = mapped_column(default=UserRole.developer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_id: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)

"""Tag model for Collybrix.

Tags label tasks within a single project. Names are unique per project
ignoring case; the check lives in the tag queries so the error can carry
the DUPLICATE_TAG code.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from collybrix.database.models.base import Base, TimestampMixin


class Tag(TimestampMixin, Base):
    """A coloured label attached to tasks.

    Attributes:
        project_id: Owning project.
        name: Label text (letters, digits, spaces, '-' and '_').
        color: Hex colour, e.g. "#3B82F6".
    """

    __tablename__ = "tags"

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[str] = mapped_column(Text, nullable=False)

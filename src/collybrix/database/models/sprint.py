"""Sprint model for Collybrix.

Defines the Sprint table and SprintStatus enum. Sprint status transitions
are enforced in ``collybrix.database.queries.sprint``, not by the database.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from collybrix.database.models.base import Base, TimestampMixin, UTCDateTime


class SprintStatus(str, enum.Enum):
    """Lifecycle status for a sprint.

    States:
        planning: Sprint is being filled, not started yet.
        active: Sprint is running; committed points are frozen.
        completed: Sprint has finished; completed points are final.
        archived: Soft-deleted.
    """

    planning = "planning"
    active = "active"
    completed = "completed"
    archived = "archived"


MAX_SPRINT_DAYS = 60


class Sprint(TimestampMixin, Base):
    """A time-boxed iteration within a project.

    Attributes:
        project_id: Owning project.
        name: Display name, e.g. "Sprint 24".
        goal: Sprint goal.
        status: SprintStatus value.
        start_date: Sprint start.
        end_date: Sprint end (after start, at most MAX_SPRINT_DAYS later).
        capacity: Story points the team can take on.
        committed_points: Story points in the sprint when it started.
        completed_points: Story points of done tasks in the sprint.
        retrospective_notes: Free-text notes.
    """

    __tablename__ = "sprints"

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    goal: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[SprintStatus] = mapped_column(
        default=SprintStatus.planning,
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    committed_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    retrospective_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

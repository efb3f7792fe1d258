"""Task model for Collybrix.

Defines the Task table and the enums for task type, status and priority.
Tasks belong to a project, optionally to a sprint and a parent task
(subtasks of an epic), and carry tags through the task_tags association.

Status is stored as plain text rather than a database enum. Legacy rows can
hold values outside TaskStatus, and ``collybrix.database.maintenance``
resets them to backlog.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Column, Float, ForeignKey, Integer, Table, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from collybrix.database.models.base import Base, JSONType, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from collybrix.database.models.tag import Tag


class TaskType(str, enum.Enum):
    """Kind of work item."""

    story = "story"
    task = "task"
    bug = "bug"
    epic = "epic"
    spike = "spike"


class TaskStatus(str, enum.Enum):
    """Workflow status for a task.

    The main flow is backlog -> todo -> in_progress -> in_review ->
    in_testing -> done. blocked, cancelled and archived sit outside it.
    Declaration order is the board order.
    """

    backlog = "backlog"
    todo = "todo"
    in_progress = "in_progress"
    in_review = "in_review"
    in_testing = "in_testing"
    blocked = "blocked"
    cancelled = "cancelled"
    done = "done"
    archived = "archived"


class TaskPriority(str, enum.Enum):
    """Task priority, most urgent first."""

    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


STORY_POINTS: tuple[int, ...] = (1, 2, 3, 5, 8, 13, 21)

# Higher value sorts first when ordering by priority
PRIORITY_RANK: dict[str, int] = {"critical": 4, "high": 3, "medium": 2, "low": 1}
STATUS_RANK: dict[str, int] = {status.value: i for i, status in enumerate(TaskStatus)}

task_tags = Table(
    "task_tags",
    Base.metadata,
    Column("task_id", Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Task(TimestampMixin, Base):
    """A work item on a project board.

    Attributes:
        project_id: Owning project.
        title: Short summary (1-200 characters).
        description: Markdown body.
        type: TaskType value.
        status: TaskStatus value (stored as text).
        priority: TaskPriority value.
        story_points: One of STORY_POINTS, or None when unestimated.
        assignee_id: Identity provider id of the assignee.
        reporter_id: Identity provider id of the reporter.
        sprint_id: Sprint the task is planned in (None = backlog).
        parent_id: Parent task for subtasks and epic children.
        dependencies: Ids of tasks blocking this one.
        acceptance_criteria: List of {id, text, completed}.
        attachments: List of {id, url, name, type, uploaded_at}.
        estimated_hours: Estimate in hours.
        actual_hours: Logged hours.
        due_date: Optional due date.
        started_at: First time the task entered in_progress.
        completed_at: Time the task reached done (None otherwise).
        tags: Tags attached through task_tags.
    """

    __tablename__ = "tasks"

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(Text, nullable=False, default=TaskType.task.value)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=TaskStatus.backlog.value, index=True
    )
    priority: Mapped[str] = mapped_column(
        Text, nullable=False, default=TaskPriority.medium.value
    )
    story_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    assignee_id: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    reporter_id: Mapped[str] = mapped_column(Text, nullable=False)
    sprint_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("sprints.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    dependencies: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    acceptance_criteria: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    estimated_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    actual_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    tags: Mapped[list[Tag]] = relationship(
        "Tag",
        secondary=task_tags,
        lazy="selectin",
        order_by="Tag.name",
    )

    @property
    def tag_ids(self) -> list[uuid.UUID]:
        """Ids of the attached tags."""
        return [tag.id for tag in self.tags]

"""SQLAlchemy ORM models for Collybrix.

Defines the schema for projects, estimations and the project-management
module (tasks, sprints, tags, users, retrospectives).

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from collybrix.database.models.base import Base, TimestampMixin
from collybrix.database.models.estimation import Estimation, EstimationStatus
from collybrix.database.models.project import PipelineStage, Project
from collybrix.database.models.retrospective import (
    ActionStatus,
    RetrospectiveAction,
    RetrospectiveCard,
    RetrospectiveFormat,
    RetrospectivePhase,
    RetrospectiveSession,
)
from collybrix.database.models.sprint import Sprint, SprintStatus
from collybrix.database.models.tag import Tag
from collybrix.database.models.task import Task, TaskPriority, TaskStatus, TaskType, task_tags
from collybrix.database.models.user import User, UserRole

__all__ = [
    "Base",
    "TimestampMixin",
    "Project",
    "PipelineStage",
    "Estimation",
    "EstimationStatus",
    "Task",
    "TaskType",
    "TaskStatus",
    "TaskPriority",
    "task_tags",
    "Sprint",
    "SprintStatus",
    "Tag",
    "User",
    "UserRole",
    "RetrospectiveSession",
    "RetrospectiveCard",
    "RetrospectiveAction",
    "RetrospectiveFormat",
    "RetrospectivePhase",
    "ActionStatus",
]

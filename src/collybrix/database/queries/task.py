"""Task query functions for Collybrix.

Provides async functions for creating, listing, updating and archiving
Task records. Status changes stamp ``started_at`` and ``completed_at`` and
keep the completed points of the affected sprints current.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import Select, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.base import utcnow
from collybrix.database.models.sprint import Sprint
from collybrix.database.models.tag import Tag
from collybrix.database.models.task import PRIORITY_RANK, STATUS_RANK, Task, TaskStatus
from collybrix.errors import ValidationFailedError

logger = structlog.get_logger(__name__)

# Sentinel accepted by the sprint and assignee filters meaning "no value"
UNSET_FILTER = "null"

SORTABLE_FIELDS = (
    "createdAt",
    "updatedAt",
    "title",
    "priority",
    "status",
    "storyPoints",
    "dueDate",
)


@dataclass
class TaskFilters:
    """Filters for listing tasks.

    Attributes:
        project_id: Restrict to one project.
        sprint_id: Restrict to one sprint; UNSET_FILTER selects the backlog.
        statuses: Any of these statuses. Archived tasks are hidden unless
            explicitly requested here.
        types: Any of these task types.
        priorities: Any of these priorities.
        assignee_ids: Any of these assignees; UNSET_FILTER selects unassigned.
        tag_ids: Tasks carrying at least one of these tags.
        parent_id: Children of this task.
        search: Case-insensitive substring of title or description.
    """

    project_id: UUID | None = None
    sprint_id: UUID | str | None = None
    statuses: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    priorities: list[str] = field(default_factory=list)
    assignee_ids: list[str] = field(default_factory=list)
    tag_ids: list[UUID] = field(default_factory=list)
    parent_id: UUID | None = None
    search: str | None = None


def _status_rank():
    return case(STATUS_RANK, value=Task.status, else_=len(STATUS_RANK))


def _priority_rank():
    return case(PRIORITY_RANK, value=Task.priority, else_=0)


def _apply_filters(stmt: Select, filters: TaskFilters) -> Select:
    if filters.project_id is not None:
        stmt = stmt.where(Task.project_id == filters.project_id)

    if filters.sprint_id == UNSET_FILTER:
        stmt = stmt.where(Task.sprint_id.is_(None))
    elif filters.sprint_id is not None:
        stmt = stmt.where(Task.sprint_id == filters.sprint_id)

    if filters.statuses:
        stmt = stmt.where(Task.status.in_(filters.statuses))
    else:
        stmt = stmt.where(Task.status != TaskStatus.archived.value)

    if filters.types:
        stmt = stmt.where(Task.type.in_(filters.types))
    if filters.priorities:
        stmt = stmt.where(Task.priority.in_(filters.priorities))

    if filters.assignee_ids:
        named = [a for a in filters.assignee_ids if a != UNSET_FILTER]
        clauses = []
        if named:
            clauses.append(Task.assignee_id.in_(named))
        if UNSET_FILTER in filters.assignee_ids:
            clauses.append(Task.assignee_id.is_(None))
        stmt = stmt.where(or_(*clauses))

    if filters.tag_ids:
        stmt = stmt.where(Task.tags.any(Tag.id.in_(filters.tag_ids)))
    if filters.parent_id is not None:
        stmt = stmt.where(Task.parent_id == filters.parent_id)

    if filters.search:
        stmt = stmt.where(
            or_(
                Task.title.icontains(filters.search, autoescape=True),
                Task.description.icontains(filters.search, autoescape=True),
            )
        )
    return stmt


def _sort_expression(sort_by: str) -> Any:
    if sort_by == "priority":
        return _priority_rank()
    if sort_by == "status":
        return _status_rank()
    columns = {
        "createdAt": Task.created_at,
        "updatedAt": Task.updated_at,
        "title": Task.title,
        "storyPoints": Task.story_points,
        "dueDate": Task.due_date,
    }
    return columns.get(sort_by, Task.created_at)


async def list_tasks(
    session: AsyncSession,
    filters: TaskFilters,
    page: int = 1,
    page_size: int = 50,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> tuple[list[Task], int]:
    """List a page of tasks matching the filters.

    Args:
        session: Active async database session.
        filters: Filter criteria.
        page: 1-based page number.
        page_size: Tasks per page.
        sort_by: One of SORTABLE_FIELDS; priority and status sort by rank.
        sort_order: "asc" or "desc".

    Returns:
        Tuple of (tasks on the page, total matching tasks).
    """
    base = _apply_filters(select(Task), filters)

    count_stmt = select(func.count()).select_from(base.subquery())
    total = int((await session.execute(count_stmt)).scalar_one())

    order = _sort_expression(sort_by)
    order = order.asc() if sort_order == "asc" else order.desc()
    stmt = base.order_by(order, Task.id).offset((page - 1) * page_size).limit(page_size)

    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def list_sprint_tasks(
    session: AsyncSession,
    sprint_id: UUID,
    statuses: Sequence[str] = (),
    assignee_id: str | None = None,
) -> list[Task]:
    """List a sprint's tasks in board order.

    Ordered by workflow status, then priority (most urgent first), then
    creation time.
    """
    stmt = select(Task).where(Task.sprint_id == sprint_id)
    if statuses:
        stmt = stmt.where(Task.status.in_(list(statuses)))
    if assignee_id is not None:
        stmt = stmt.where(Task.assignee_id == assignee_id)
    stmt = stmt.order_by(_status_rank(), _priority_rank().desc(), Task.created_at)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def tasks_in_sprint(session: AsyncSession, sprint_id: UUID) -> list[Task]:
    """All tasks currently planned in a sprint."""
    result = await session.execute(select(Task).where(Task.sprint_id == sprint_id))
    return list(result.scalars().all())


async def tasks_in_project(session: AsyncSession, project_id: UUID) -> list[Task]:
    """All tasks of a project, archived ones included."""
    result = await session.execute(select(Task).where(Task.project_id == project_id))
    return list(result.scalars().all())


async def get_task(session: AsyncSession, task_id: UUID) -> Task | None:
    """Retrieve a task by ID with fresh column and tag state."""
    stmt = select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _load_tags(session: AsyncSession, project_id: UUID, tag_ids: Sequence[UUID]) -> list[Tag]:
    unique_ids = list(dict.fromkeys(tag_ids))
    if not unique_ids:
        return []
    result = await session.execute(
        select(Tag).where(Tag.id.in_(unique_ids), Tag.project_id == project_id)
    )
    tags = list(result.scalars().all())
    if len(tags) != len(unique_ids):
        found = {tag.id for tag in tags}
        missing = [str(tag_id) for tag_id in unique_ids if tag_id not in found]
        raise ValidationFailedError(
            "Unknown tags for this project",
            details={"tags": missing},
        )
    return tags


async def _ensure_sprint_in_project(
    session: AsyncSession, project_id: UUID, sprint_id: UUID | None
) -> None:
    if sprint_id is None:
        return
    result = await session.execute(select(Sprint.project_id).where(Sprint.id == sprint_id))
    owner = result.scalar_one_or_none()
    if owner != project_id:
        raise ValidationFailedError(
            "Sprint does not belong to this project",
            details={"sprintId": str(sprint_id)},
        )


def apply_status_change(task: Task, new_status: str, now: datetime) -> None:
    """Set a task's status and maintain its lifecycle timestamps.

    Entering in_progress stamps started_at the first time. Entering done
    stamps completed_at; any other status clears it.
    """
    if new_status == TaskStatus.in_progress.value and task.started_at is None:
        task.started_at = now
    if new_status == TaskStatus.done.value:
        if task.status != TaskStatus.done.value or task.completed_at is None:
            task.completed_at = now
    else:
        task.completed_at = None
    task.status = new_status


async def recompute_completed_points(session: AsyncSession, sprint_id: UUID | None) -> int:
    """Store the sum of done story points on a sprint.

    Does not commit; callers commit with their own changes.

    Returns:
        The recomputed completed points (0 when sprint_id is None).
    """
    if sprint_id is None:
        return 0
    stmt = select(func.coalesce(func.sum(Task.story_points), 0)).where(
        Task.sprint_id == sprint_id,
        Task.status == TaskStatus.done.value,
    )
    completed = int((await session.execute(stmt)).scalar_one())
    sprint = await session.get(Sprint, sprint_id)
    if sprint is not None:
        sprint.completed_points = completed
        sprint.updated_at = utcnow()
    return completed


async def create_task(
    session: AsyncSession,
    project_id: UUID,
    tag_ids: Sequence[UUID] = (),
    **fields: Any,
) -> Task:
    """Create a new task.

    Args:
        session: Active async database session.
        project_id: Owning project.
        tag_ids: Tags to attach; each must belong to the project.
        **fields: Remaining column values.

    Returns:
        The newly created Task.

    Raises:
        ValidationFailedError: If a tag or the sprint is not in the project.
    """
    await _ensure_sprint_in_project(session, project_id, fields.get("sprint_id"))
    tags = await _load_tags(session, project_id, tag_ids)

    now = utcnow()
    status = fields.pop("status", TaskStatus.backlog.value)
    task = Task(project_id=project_id, tags=tags, status=TaskStatus.backlog.value, **fields)
    apply_status_change(task, status, now)

    session.add(task)
    await session.flush()
    if task.status == TaskStatus.done.value:
        await recompute_completed_points(session, task.sprint_id)
    await session.commit()

    logger.info(
        "task_created",
        task_id=str(task.id),
        project_id=str(project_id),
        status=task.status,
    )
    return await get_task(session, task.id)  # type: ignore[return-value]


async def update_task(
    session: AsyncSession,
    task_id: UUID,
    changes: dict[str, Any],
    tag_ids: Sequence[UUID] | None = None,
) -> Task | None:
    """Apply a partial update to a task.

    Args:
        session: Active async database session.
        task_id: Task to update.
        changes: Column values to change (status handled specially).
        tag_ids: Replacement tag set, or None to leave tags untouched.

    Returns:
        The updated Task, or None if it does not exist.
    """
    task = await get_task(session, task_id)
    if task is None:
        logger.warning("task_not_found", task_id=str(task_id))
        return None

    previous_sprint = task.sprint_id
    previous_status = task.status

    if "sprint_id" in changes:
        await _ensure_sprint_in_project(session, task.project_id, changes["sprint_id"])
    if tag_ids is not None:
        task.tags = await _load_tags(session, task.project_id, tag_ids)

    new_status = changes.pop("status", None)
    for name, value in changes.items():
        setattr(task, name, value)
    now = utcnow()
    if new_status is not None:
        apply_status_change(task, new_status, now)
    task.updated_at = now
    await session.flush()

    touches_points = (
        new_status is not None or "story_points" in changes or "sprint_id" in changes
    )
    if touches_points:
        await recompute_completed_points(session, previous_sprint)
        if task.sprint_id != previous_sprint:
            await recompute_completed_points(session, task.sprint_id)
    await session.commit()

    logger.info(
        "task_updated",
        task_id=str(task_id),
        fields_updated=sorted([*changes, *(["status"] if new_status else [])]),
        previous_status=previous_status,
        status=task.status,
    )
    return await get_task(session, task_id)


async def archive_task(session: AsyncSession, task_id: UUID) -> Task | None:
    """Soft-delete a task by moving it to the archived status.

    Returns:
        The archived Task, or None if it does not exist.
    """
    task = await get_task(session, task_id)
    if task is None:
        logger.warning("task_not_found", task_id=str(task_id))
        return None

    now = utcnow()
    apply_status_change(task, TaskStatus.archived.value, now)
    task.updated_at = now
    await session.flush()
    await recompute_completed_points(session, task.sprint_id)
    await session.commit()

    logger.info("task_archived", task_id=str(task_id))
    return task


async def move_unfinished_tasks(
    session: AsyncSession,
    from_sprint_id: UUID,
    to_sprint_id: UUID | None,
) -> int:
    """Move every task of a sprint that is not done to another sprint.

    Cancelled and archived tasks stay where they are. Does not commit.

    Returns:
        Number of tasks moved.
    """
    settled = (TaskStatus.done.value, TaskStatus.cancelled.value, TaskStatus.archived.value)
    result = await session.execute(
        select(Task).where(Task.sprint_id == from_sprint_id, Task.status.not_in(settled))
    )
    moved = 0
    now = utcnow()
    for task in result.scalars():
        task.sprint_id = to_sprint_id
        task.updated_at = now
        moved += 1
    return moved


async def invalid_status_tasks(session: AsyncSession) -> list[Task]:
    """Tasks whose stored status is not a known TaskStatus value."""
    valid = [status.value for status in TaskStatus]
    result = await session.execute(select(Task).where(Task.status.not_in(valid)))
    return list(result.scalars().all())

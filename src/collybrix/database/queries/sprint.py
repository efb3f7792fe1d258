"""Sprint query functions for Collybrix.

Provides async CRUD functions for Sprint records plus the lifecycle
actions. Status changes are validated against VALID_SPRINT_TRANSITIONS:
starting a sprint freezes its committed points, completing it records
its completed points, and deleting it only archives it.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.base import utcnow
from collybrix.database.models.sprint import Sprint, SprintStatus
from collybrix.database.models.task import Task
from collybrix.database.queries.task import move_unfinished_tasks, recompute_completed_points
from collybrix.errors import ConflictError

logger = structlog.get_logger(__name__)

VALID_SPRINT_TRANSITIONS: dict[SprintStatus, set[SprintStatus]] = {
    SprintStatus.planning: {SprintStatus.active, SprintStatus.archived},
    SprintStatus.active: {SprintStatus.completed, SprintStatus.planning, SprintStatus.archived},
    SprintStatus.completed: {SprintStatus.active, SprintStatus.archived},
    SprintStatus.archived: {SprintStatus.planning},
}

SORTABLE_FIELDS = ("startDate", "endDate", "name", "createdAt", "updatedAt")


def validate_transition(current: SprintStatus, target: SprintStatus) -> bool:
    """Return True if a sprint may move from current to target."""
    return target in VALID_SPRINT_TRANSITIONS.get(current, set())


async def create_sprint(session: AsyncSession, **fields: Any) -> Sprint:
    """Create a sprint in the planning status.

    Args:
        session: Active async database session.
        **fields: Column values (project_id, name, dates, capacity, ...).

    Returns:
        The newly created Sprint.
    """
    sprint = Sprint(status=SprintStatus.planning, **fields)
    session.add(sprint)
    await session.commit()
    await session.refresh(sprint)

    logger.info(
        "sprint_created",
        sprint_id=str(sprint.id),
        project_id=str(sprint.project_id),
        name=sprint.name,
    )
    return sprint


async def get_sprint(session: AsyncSession, sprint_id: UUID) -> Sprint | None:
    """Retrieve a sprint by ID, or None if it does not exist."""
    result = await session.execute(select(Sprint).where(Sprint.id == sprint_id))
    return result.scalar_one_or_none()


async def list_sprints(
    session: AsyncSession,
    project_id: UUID | None = None,
    status: SprintStatus | None = None,
    page: int = 1,
    page_size: int = 50,
    sort_by: str = "startDate",
    sort_order: str = "desc",
) -> tuple[list[Sprint], int]:
    """List a page of sprints.

    Archived sprints are hidden unless requested through ``status``.

    Returns:
        Tuple of (sprints on the page, total matching sprints).
    """
    stmt = select(Sprint)
    if project_id is not None:
        stmt = stmt.where(Sprint.project_id == project_id)
    if status is not None:
        stmt = stmt.where(Sprint.status == status)
    else:
        stmt = stmt.where(Sprint.status != SprintStatus.archived)

    total = int(
        (await session.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    )

    columns = {
        "startDate": Sprint.start_date,
        "endDate": Sprint.end_date,
        "name": Sprint.name,
        "createdAt": Sprint.created_at,
        "updatedAt": Sprint.updated_at,
    }
    column = columns.get(sort_by, Sprint.start_date)
    order = column.asc() if sort_order == "asc" else column.desc()
    stmt = stmt.order_by(order, Sprint.id).offset((page - 1) * page_size).limit(page_size)

    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def recent_completed_sprints(
    session: AsyncSession,
    project_id: UUID,
    limit: int,
) -> list[Sprint]:
    """The most recently ended completed sprints of a project, newest first."""
    stmt = (
        select(Sprint)
        .where(Sprint.project_id == project_id, Sprint.status == SprintStatus.completed)
        .order_by(Sprint.end_date.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def sprints_in_project(session: AsyncSession, project_id: UUID) -> list[Sprint]:
    """All sprints of a project, ordered by start date."""
    result = await session.execute(
        select(Sprint).where(Sprint.project_id == project_id).order_by(Sprint.start_date)
    )
    return list(result.scalars().all())


async def _planned_points(session: AsyncSession, sprint_id: UUID) -> int:
    stmt = select(func.coalesce(func.sum(Task.story_points), 0)).where(Task.sprint_id == sprint_id)
    return int((await session.execute(stmt)).scalar_one())


async def _transition(session: AsyncSession, sprint: Sprint, target: SprintStatus) -> None:
    current = SprintStatus(sprint.status)
    if current == target:
        return
    if not validate_transition(current, target):
        logger.warning(
            "invalid_sprint_transition",
            sprint_id=str(sprint.id),
            current=current.value,
            target=target.value,
        )
        raise ConflictError(
            f"Cannot move sprint from {current.value} to {target.value}",
            details={"current": current.value, "target": target.value},
        )

    if target == SprintStatus.active and current == SprintStatus.planning:
        sprint.committed_points = await _planned_points(session, sprint.id)
    if target == SprintStatus.completed:
        await recompute_completed_points(session, sprint.id)
    sprint.status = target


async def update_sprint(
    session: AsyncSession,
    sprint_id: UUID,
    **updates: Any,
) -> Sprint | None:
    """Update a sprint's fields.

    A ``status`` entry is applied as a lifecycle transition.

    Returns:
        The updated Sprint, or None if it does not exist.

    Raises:
        ConflictError: If the status change is not allowed.
    """
    sprint = await get_sprint(session, sprint_id)
    if sprint is None:
        logger.warning("sprint_not_found", sprint_id=str(sprint_id))
        return None

    target = updates.pop("status", None)
    for name, value in updates.items():
        setattr(sprint, name, value)
    if target is not None:
        await _transition(session, sprint, SprintStatus(target))
    sprint.updated_at = utcnow()
    await session.commit()
    await session.refresh(sprint)

    logger.info(
        "sprint_updated",
        sprint_id=str(sprint_id),
        fields_updated=sorted([*updates, *(["status"] if target else [])]),
    )
    return sprint


async def start_sprint(session: AsyncSession, sprint_id: UUID) -> Sprint | None:
    """Start a planning sprint.

    Committed points become the sum of story points currently in the
    sprint and are stored together with the status flip.

    Returns:
        The started Sprint, or None if it does not exist.

    Raises:
        ConflictError: If the sprint is not in planning.
    """
    sprint = await get_sprint(session, sprint_id)
    if sprint is None:
        return None
    if sprint.status != SprintStatus.planning:
        raise ConflictError(
            "Only sprints in planning can be started",
            details={"status": SprintStatus(sprint.status).value},
        )

    await _transition(session, sprint, SprintStatus.active)
    sprint.updated_at = utcnow()
    await session.commit()
    await session.refresh(sprint)

    logger.info(
        "sprint_started",
        sprint_id=str(sprint_id),
        committed_points=sprint.committed_points,
    )
    return sprint


async def complete_sprint(
    session: AsyncSession,
    sprint_id: UUID,
    move_to_sprint_id: UUID | None = None,
    move_unfinished: bool = False,
) -> tuple[Sprint, int] | None:
    """Complete an active sprint.

    Args:
        session: Active async database session.
        sprint_id: Sprint to complete.
        move_to_sprint_id: Sprint receiving unfinished work (None = backlog).
        move_unfinished: Move tasks that are not done out of the sprint.

    Returns:
        Tuple of (completed Sprint, number of tasks moved), or None if the
        sprint does not exist.

    Raises:
        ConflictError: If the sprint is not active.
    """
    sprint = await get_sprint(session, sprint_id)
    if sprint is None:
        return None
    if sprint.status != SprintStatus.active:
        raise ConflictError(
            "Only active sprints can be completed",
            details={"status": SprintStatus(sprint.status).value},
        )

    await _transition(session, sprint, SprintStatus.completed)
    moved = 0
    if move_unfinished:
        moved = await move_unfinished_tasks(session, sprint_id, move_to_sprint_id)
    sprint.updated_at = utcnow()
    await session.commit()
    await session.refresh(sprint)

    logger.info(
        "sprint_completed",
        sprint_id=str(sprint_id),
        completed_points=sprint.completed_points,
        tasks_moved=moved,
    )
    return sprint, moved


async def archive_sprint(session: AsyncSession, sprint_id: UUID) -> Sprint | None:
    """Soft-delete a sprint by archiving it.

    Returns:
        The archived Sprint, or None if it does not exist.
    """
    sprint = await get_sprint(session, sprint_id)
    if sprint is None:
        logger.warning("sprint_not_found", sprint_id=str(sprint_id))
        return None

    sprint.status = SprintStatus.archived
    sprint.updated_at = utcnow()
    await session.commit()
    await session.refresh(sprint)

    logger.info("sprint_archived", sprint_id=str(sprint_id))
    return sprint

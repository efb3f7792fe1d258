"""Queries over client projects."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.base import utcnow
from collybrix.database.models.project import Project

logger = structlog.get_logger(__name__)


async def create_project(session: AsyncSession, **fields: Any) -> Project:
    """Insert a project; columns not given fall back to their defaults."""
    project = Project(**fields)
    session.add(project)
    await session.commit()
    await session.refresh(project)
    logger.info("project_created", project_id=str(project.id), name=project.name)
    return project


async def get_project(session: AsyncSession, project_id: UUID) -> Project | None:
    return await session.get(Project, project_id)


async def project_exists(session: AsyncSession, project_id: UUID) -> bool:
    found = await session.scalar(select(Project.id).where(Project.id == project_id))
    return found is not None


async def list_projects(session: AsyncSession, status_filter: str | None = None) -> list[Project]:
    """Projects ordered from most to least recently created.

    Args:
        session: Open session.
        status_filter: Only projects in this lifecycle status, when given.
    """
    query = select(Project).order_by(Project.created_at.desc())
    if status_filter:
        query = query.filter_by(status=status_filter)
    return list(await session.scalars(query))


async def count_projects(session: AsyncSession) -> int:
    total = await session.scalar(select(func.count(Project.id)))
    return total or 0


async def update_project(session: AsyncSession, project_id: UUID, **changes: Any) -> Project | None:
    """Apply ``changes`` to a project and bump its ``updated_at``.

    Returns:
        The refreshed project, or None when no project has this id.
    """
    project = await session.get(Project, project_id)
    if project is None:
        logger.warning("project_update_missing", project_id=str(project_id))
        return None

    for column, value in changes.items():
        setattr(project, column, value)
    project.updated_at = utcnow()
    await session.commit()
    await session.refresh(project)
    logger.info("project_updated", project_id=str(project_id), fields=sorted(changes))
    return project


async def delete_project(session: AsyncSession, project_id: UUID) -> bool:
    """Remove a project row; False when nothing matched."""
    outcome = await session.execute(delete(Project).where(Project.id == project_id))
    await session.commit()
    if not outcome.rowcount:
        logger.warning("project_delete_missing", project_id=str(project_id))
        return False
    logger.info("project_deleted", project_id=str(project_id))
    return True

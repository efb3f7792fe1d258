"""Tag query functions for Collybrix.

Tag names are unique within a project regardless of case. Deleting a tag
is a hard delete that also detaches it from every task.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.base import utcnow
from collybrix.database.models.tag import Tag
from collybrix.database.models.task import task_tags
from collybrix.errors import ConflictError

logger = structlog.get_logger(__name__)


async def _ensure_unique_name(
    session: AsyncSession,
    project_id: UUID,
    name: str,
    exclude_id: UUID | None = None,
) -> None:
    stmt = select(Tag.id).where(
        Tag.project_id == project_id,
        func.lower(Tag.name) == name.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(Tag.id != exclude_id)
    if (await session.execute(stmt)).first() is not None:
        logger.warning("duplicate_tag", project_id=str(project_id), name=name)
        raise ConflictError(
            f'A tag named "{name}" already exists in this project',
            code="DUPLICATE_TAG",
        )


async def create_tag(session: AsyncSession, project_id: UUID, name: str, color: str) -> Tag:
    """Create a tag.

    Raises:
        ConflictError: DUPLICATE_TAG if the project already has the name.
    """
    await _ensure_unique_name(session, project_id, name)
    tag = Tag(project_id=project_id, name=name, color=color)
    session.add(tag)
    await session.commit()
    await session.refresh(tag)

    logger.info("tag_created", tag_id=str(tag.id), project_id=str(project_id), name=name)
    return tag


async def get_tag(session: AsyncSession, tag_id: UUID) -> Tag | None:
    """Retrieve a tag by ID, or None if it does not exist."""
    result = await session.execute(select(Tag).where(Tag.id == tag_id))
    return result.scalar_one_or_none()


async def list_tags(session: AsyncSession, project_id: UUID | None = None) -> list[Tag]:
    """List tags alphabetically, optionally for one project."""
    stmt = select(Tag)
    if project_id is not None:
        stmt = stmt.where(Tag.project_id == project_id)
    result = await session.execute(stmt.order_by(func.lower(Tag.name)))
    return list(result.scalars().all())


async def tag_names(session: AsyncSession, tag_ids: list[str]) -> dict[str, str]:
    """Map tag id strings to tag names."""
    if not tag_ids:
        return {}
    result = await session.execute(
        select(Tag.id, Tag.name).where(Tag.id.in_([UUID(t) for t in tag_ids]))
    )
    return {str(tag_id): name for tag_id, name in result.all()}


async def update_tag(
    session: AsyncSession,
    tag_id: UUID,
    name: str | None = None,
    color: str | None = None,
) -> Tag | None:
    """Rename or recolour a tag.

    Returns:
        The updated Tag, or None if it does not exist.

    Raises:
        ConflictError: DUPLICATE_TAG if the new name is taken.
    """
    tag = await get_tag(session, tag_id)
    if tag is None:
        logger.warning("tag_not_found", tag_id=str(tag_id))
        return None

    if name is not None and name.lower() != tag.name.lower():
        await _ensure_unique_name(session, tag.project_id, name, exclude_id=tag.id)
    if name is not None:
        tag.name = name
    if color is not None:
        tag.color = color
    tag.updated_at = utcnow()
    await session.commit()
    await session.refresh(tag)

    logger.info("tag_updated", tag_id=str(tag_id))
    return tag


async def delete_tag(session: AsyncSession, tag_id: UUID) -> int | None:
    """Delete a tag and remove it from every task.

    Returns:
        Number of tasks the tag was removed from, or None if the tag does
        not exist.
    """
    tag = await get_tag(session, tag_id)
    if tag is None:
        logger.warning("tag_not_found", tag_id=str(tag_id))
        return None

    detached = await session.execute(delete(task_tags).where(task_tags.c.tag_id == tag_id))
    await session.execute(delete(Tag).where(Tag.id == tag_id))
    await session.commit()

    logger.info("tag_deleted", tag_id=str(tag_id), tasks_updated=detached.rowcount)
    return detached.rowcount

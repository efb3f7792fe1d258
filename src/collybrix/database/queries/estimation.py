"""Estimation CRUD query functions for Collybrix."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.base import utcnow
from collybrix.database.models.estimation import Estimation

logger = structlog.get_logger(__name__)


async def create_estimation(session: AsyncSession, **fields: Any) -> Estimation:
    """Persist a new estimation.

    Args:
        session: Active async database session.
        **fields: Column values, totals already computed.

    Returns:
        The newly created Estimation.
    """
    estimation = Estimation(**fields)
    session.add(estimation)
    await session.commit()
    await session.refresh(estimation)

    logger.info(
        "estimation_created",
        estimation_id=str(estimation.id),
        final_price=estimation.final_price,
    )
    return estimation


async def get_estimation(session: AsyncSession, estimation_id: UUID) -> Estimation | None:
    """Retrieve an estimation by ID, or None if it does not exist."""
    result = await session.execute(select(Estimation).where(Estimation.id == estimation_id))
    return result.scalar_one_or_none()


async def list_estimations(session: AsyncSession) -> list[Estimation]:
    """List all estimations, newest first."""
    result = await session.execute(select(Estimation).order_by(Estimation.created_at.desc()))
    return list(result.scalars().all())


async def update_estimation(
    session: AsyncSession,
    estimation_id: UUID,
    **updates: Any,
) -> Estimation | None:
    """Replace an estimation's fields.

    Returns:
        The updated Estimation, or None if it does not exist.
    """
    estimation = await get_estimation(session, estimation_id)
    if estimation is None:
        logger.warning("estimation_not_found", estimation_id=str(estimation_id))
        return None

    for field, value in updates.items():
        setattr(estimation, field, value)
    estimation.updated_at = utcnow()
    await session.commit()
    await session.refresh(estimation)

    logger.info("estimation_updated", estimation_id=str(estimation_id))
    return estimation


async def delete_estimation(session: AsyncSession, estimation_id: UUID) -> bool:
    """Delete an estimation; False if it did not exist."""
    result = await session.execute(delete(Estimation).where(Estimation.id == estimation_id))
    await session.commit()

    deleted = result.rowcount > 0
    if deleted:
        logger.info("estimation_deleted", estimation_id=str(estimation_id))
    else:
        logger.warning("estimation_not_found", estimation_id=str(estimation_id))
    return deleted

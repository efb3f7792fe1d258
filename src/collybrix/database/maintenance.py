"""Offline data remediation for Collybrix.

Task status is stored as plain text, so rows written by older clients can
carry values outside TaskStatus. ``fix_task_statuses`` resets those rows to
backlog.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.base import utcnow
from collybrix.database.models.task import TaskStatus
from collybrix.database.queries.task import invalid_status_tasks

logger = structlog.get_logger(__name__)


async def fix_task_statuses(session: AsyncSession) -> int:
    """Reset every task with an unknown status to backlog.

    Returns:
        Number of tasks fixed.
    """
    tasks = await invalid_status_tasks(session)
    now = utcnow()
    for task in tasks:
        logger.warning(
            "invalid_task_status",
            task_id=str(task.id),
            status=task.status,
        )
        task.status = TaskStatus.backlog.value
        task.completed_at = None
        task.updated_at = now
    await session.commit()

    logger.info("task_statuses_fixed", count=len(tasks))
    return len(tasks)

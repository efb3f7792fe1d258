"""Integration tests for database maintenance and seeding functions."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.maintenance import fix_task_statuses
from collybrix.database.models.base import utcnow
from collybrix.database.queries.project import count_projects, create_project
from collybrix.database.queries.task import create_task, get_task
from collybrix.database.seed import ALREADY_SEEDED, DEMO_PROJECTS, seed_projects


async def test_fix_task_statuses_resets_unknown_values(db_session: AsyncSession) -> None:
    project = await create_project(db_session, name="Legacy")
    broken = await create_task(
        db_session, project.id, title="Imported", reporter_id="user_a", status="done"
    )
    healthy = await create_task(
        db_session, project.id, title="Fine", reporter_id="user_a", status="in_review"
    )
    broken.status = "Doing"
    broken.completed_at = utcnow()
    await db_session.commit()

    fixed = await fix_task_statuses(db_session)

    assert fixed == 1
    repaired = await get_task(db_session, broken.id)
    assert repaired.status == "backlog"
    assert repaired.completed_at is None
    assert (await get_task(db_session, healthy.id)).status == "in_review"
    assert await fix_task_statuses(db_session) == 0


async def test_seed_projects(db_session: AsyncSession) -> None:
    result = await seed_projects(db_session)

    assert len(result["insertedIds"]) == len(DEMO_PROJECTS)
    assert await count_projects(db_session) == len(DEMO_PROJECTS)

    again = await seed_projects(db_session)
    assert again == {"message": ALREADY_SEEDED, "count": len(DEMO_PROJECTS)}

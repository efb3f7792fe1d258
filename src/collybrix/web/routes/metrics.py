"""Project-management metrics endpoints for Collybrix.

Loads sprints and tasks, then delegates every calculation to the pure
functions in ``collybrix.pm.metrics``.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.models.sprint import SprintStatus
from collybrix.database.queries import project as project_queries
from collybrix.database.queries import sprint as sprint_queries
from collybrix.database.queries import tag as tag_queries
from collybrix.database.queries import task as task_queries
from collybrix.database.queries import user as user_queries
from collybrix.errors import MissingParameterError, NotFoundError
from collybrix.logging import get_logger
from collybrix.pm import metrics
from collybrix.schema import CamelModel
from collybrix.web.dependencies import get_session_factory, parse_uuid
from collybrix.web.envelope import ok

logger = get_logger(__name__)

DEFAULT_VELOCITY_SPRINTS = 6


class SprintSummary(CamelModel):
    sprint_id: str
    sprint_name: str
    status: SprintStatus
    start_date: datetime
    end_date: datetime
    capacity: int
    committed_points: int
    completed_points: int
    percentage_completed: int
    days_elapsed: int
    days_remaining: int
    total_days: int
    tasks_total: int
    tasks_by_status: dict[str, int]
    tasks_by_type: dict[str, int]
    is_over_capacity: bool
    scope_creep: metrics.ScopeCreep
    average_cycle_time: float
    team_workload: list[metrics.MemberWorkload]


class ProjectSummary(CamelModel):
    project_id: str
    project_name: str
    total_tasks: int
    total_story_points: int
    tasks_by_status: dict[str, int]
    tasks_by_type: dict[str, int]
    tasks_by_priority: dict[str, int]
    active_sprints: int
    completed_sprints: int
    average_velocity: int
    bug_ratio: int
    top_tags: list[metrics.TagUsage]


async def sprint_summary(session: AsyncSession, sprint_id: UUID) -> SprintSummary:
    """Progress, scope creep, cycle time and workload of one sprint."""
    sprint = await sprint_queries.get_sprint(session, sprint_id)
    if sprint is None:
        raise NotFoundError("Sprint not found")

    tasks = await task_queries.tasks_in_sprint(session, sprint_id)
    progress = metrics.sprint_progress(sprint, tasks)
    assignees = sorted({t.assignee_id for t in tasks if t.assignee_id})
    names = await user_queries.user_names(session, assignees)

    return SprintSummary(
        sprint_id=str(sprint.id),
        sprint_name=sprint.name,
        status=sprint.status,
        start_date=sprint.start_date,
        end_date=sprint.end_date,
        capacity=sprint.capacity,
        committed_points=sprint.committed_points,
        completed_points=sprint.completed_points,
        percentage_completed=progress.percentage_completed,
        days_elapsed=progress.days_elapsed,
        days_remaining=progress.days_remaining,
        total_days=progress.total_days,
        tasks_total=len(tasks),
        tasks_by_status=metrics.count_by_status(tasks),
        tasks_by_type=metrics.count_by(tasks, "type"),
        is_over_capacity=progress.is_over_capacity,
        scope_creep=metrics.scope_creep(sprint, tasks),
        average_cycle_time=metrics.average_cycle_time(tasks),
        team_workload=metrics.team_workload(tasks, names),
    )


async def project_summary(session: AsyncSession, project_id: UUID) -> ProjectSummary:
    """Task distribution, sprint counts, velocity and tag usage of a project."""
    project = await project_queries.get_project(session, project_id)
    if project is None:
        raise NotFoundError("Project not found")

    tasks = await task_queries.tasks_in_project(session, project_id)
    sprints = await sprint_queries.sprints_in_project(session, project_id)

    delivered = [
        s.completed_points
        for s in sprints
        if s.status == SprintStatus.completed and s.completed_points > 0
    ]
    average_velocity = metrics.round_half_up(sum(delivered) / len(delivered)) if delivered else 0

    tag_ids = [[str(tag_id) for tag_id in t.tag_ids] for t in tasks]
    names = await tag_queries.tag_names(session, sorted({i for ids in tag_ids for i in ids}))

    return ProjectSummary(
        project_id=str(project.id),
        project_name=project.name,
        total_tasks=len(tasks),
        total_story_points=metrics.total_points(tasks),
        tasks_by_status=metrics.count_by_status(tasks),
        tasks_by_type=metrics.count_by(tasks, "type"),
        tasks_by_priority=metrics.count_by(tasks, "priority"),
        active_sprints=sum(1 for s in sprints if s.status == SprintStatus.active),
        completed_sprints=sum(1 for s in sprints if s.status == SprintStatus.completed),
        average_velocity=average_velocity,
        bug_ratio=metrics.bug_ratio(tasks),
        top_tags=metrics.top_tags(tag_ids, names),
    )


def create_metrics_router() -> APIRouter:
    """Create metrics router.

    Routes:
        GET /api/pm/metrics/summary   - Sprint or project summary
        GET /api/pm/metrics/burndown  - Burndown series of a sprint
        GET /api/pm/metrics/velocity  - Velocity of recent completed sprints
    """
    router = APIRouter(prefix="/api/pm/metrics", tags=["metrics"])

    @router.get("/summary")
    async def summary(
        sprint_id: str | None = Query(None, alias="sprintId"),  # noqa: B008
        project_id: str | None = Query(None, alias="projectId"),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        if sprint_id:
            sprint_uuid = parse_uuid(sprint_id, "sprint")
            async with session_factory() as session:
                return ok(await sprint_summary(session, sprint_uuid))
        if project_id:
            project_uuid = parse_uuid(project_id, "project")
            async with session_factory() as session:
                return ok(await project_summary(session, project_uuid))
        raise MissingParameterError("Either sprintId or projectId query parameter is required")

    @router.get("/burndown")
    async def burndown(
        sprint_id: str | None = Query(None, alias="sprintId"),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        if not sprint_id:
            raise MissingParameterError("sprintId query parameter is required")
        sprint_uuid = parse_uuid(sprint_id, "sprint")

        async with session_factory() as session:
            sprint = await sprint_queries.get_sprint(session, sprint_uuid)
            if sprint is None:
                raise NotFoundError("Sprint not found")
            tasks = await task_queries.tasks_in_sprint(session, sprint_uuid)

        return ok(metrics.burndown(sprint, tasks))

    @router.get("/velocity")
    async def velocity(
        project_id: str | None = Query(None, alias="projectId"),  # noqa: B008
        sprint_count: int = Query(DEFAULT_VELOCITY_SPRINTS, alias="sprintCount", ge=1, le=50),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        if not project_id:
            raise MissingParameterError("projectId query parameter is required")
        project_uuid = parse_uuid(project_id, "project")

        async with session_factory() as session:
            sprints = await sprint_queries.recent_completed_sprints(
                session, project_uuid, limit=sprint_count
            )
            pairs = [(s, await task_queries.tasks_in_sprint(session, s.id)) for s in sprints]

        report = metrics.velocity_report(pairs)
        logger.info(
            "velocity_computed",
            project_id=project_id,
            sprint_count=report.sprint_count,
            average_velocity=report.average_velocity,
        )
        return ok(report)

    return router

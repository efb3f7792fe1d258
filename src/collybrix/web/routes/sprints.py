"""Sprint endpoints for the Collybrix project-management module.

Besides CRUD, sprints have explicit lifecycle actions: ``start`` freezes
the committed points, ``complete`` records the delivered points and can
move unfinished work out of the sprint. Status changes sent through
PUT/PATCH follow the same transition rules; an invalid transition returns
409. Deleting a sprint archives it.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.models.sprint import MAX_SPRINT_DAYS, SprintStatus
from collybrix.database.models.task import TaskStatus
from collybrix.database.queries import project as project_queries
from collybrix.database.queries import sprint as sprint_queries
from collybrix.database.queries import task as task_queries
from collybrix.errors import NotFoundError, ValidationFailedError
from collybrix.logging import get_logger
from collybrix.schema import CamelModel
from collybrix.web.dependencies import (
    Pagination,
    get_pagination,
    get_session_factory,
    parse_optional_uuid,
    path_uuid,
)
from collybrix.web.envelope import ok
from collybrix.web.routes.tasks import TaskResponse

logger = get_logger(__name__)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _check_dates(start: datetime | None, end: datetime | None) -> None:
    if start is None or end is None:
        return
    start, end = _aware(start), _aware(end)
    if end <= start:
        raise ValueError("End date must be after start date")
    if end - start > timedelta(days=MAX_SPRINT_DAYS):
        raise ValueError(f"Sprint duration cannot exceed {MAX_SPRINT_DAYS} days")


class SprintCreate(CamelModel):
    """Request schema for creating a sprint; sprints always start in planning."""

    project_id: UUID
    name: str = Field(..., min_length=1, max_length=100)
    goal: str = Field(default="", max_length=500)
    start_date: datetime
    end_date: datetime
    capacity: int = Field(default=0, ge=0, le=500)
    committed_points: int = Field(default=0, ge=0)
    completed_points: int = Field(default=0, ge=0)
    retrospective_notes: str = ""

    @model_validator(mode="after")
    def _dates(self) -> SprintCreate:
        _check_dates(self.start_date, self.end_date)
        return self


class SprintUpdate(CamelModel):
    """Request schema for partial sprint updates."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    goal: str | None = Field(default=None, max_length=500)
    status: SprintStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    capacity: int | None = Field(default=None, ge=0, le=500)
    committed_points: int | None = Field(default=None, ge=0)
    completed_points: int | None = Field(default=None, ge=0)
    retrospective_notes: str | None = None

    @model_validator(mode="after")
    def _dates(self) -> SprintUpdate:
        _check_dates(self.start_date, self.end_date)
        return self


class CompleteSprintRequest(CamelModel):
    """Options for completing a sprint.

    Attributes:
        move_unfinished: Move tasks that are not done out of the sprint.
        move_to_sprint_id: Destination sprint; None sends them to the backlog.
    """

    move_unfinished: bool = False
    move_to_sprint_id: UUID | None = None


class SprintResponse(CamelModel):
    id: UUID
    project_id: UUID
    name: str
    goal: str
    status: SprintStatus
    start_date: datetime
    end_date: datetime
    capacity: int
    committed_points: int
    completed_points: int
    retrospective_notes: str
    created_at: datetime
    updated_at: datetime


sprint_id_param = path_uuid("sprint_id", "sprint")


def create_sprints_router() -> APIRouter:
    """Create sprint router.

    Routes:
        GET    /api/pm/sprints                 - List sprints
        POST   /api/pm/sprints                 - Create a sprint
        GET    /api/pm/sprints/{id}            - Get a sprint
        PUT    /api/pm/sprints/{id}            - Update a sprint
        PATCH  /api/pm/sprints/{id}            - Update a sprint
        DELETE /api/pm/sprints/{id}            - Archive a sprint
        GET    /api/pm/sprints/{id}/tasks      - Tasks of a sprint in board order
        POST   /api/pm/sprints/{id}/start      - Start a planning sprint
        POST   /api/pm/sprints/{id}/complete   - Complete an active sprint
    """
    router = APIRouter(prefix="/api/pm/sprints", tags=["sprints"])

    @router.get("")
    async def list_sprints(
        project_id: str | None = Query(None, alias="projectId"),  # noqa: B008
        status: SprintStatus | None = None,
        sort_by: str = Query("startDate", alias="sortBy"),  # noqa: B008
        sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),  # noqa: B008
        pagination: Pagination = Depends(get_pagination),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            sprints, total = await sprint_queries.list_sprints(
                session,
                project_id=parse_optional_uuid(project_id, "project"),
                status=status,
                page=pagination.page,
                page_size=pagination.page_size,
                sort_by=sort_by,
                sort_order=sort_order,
            )

        return ok(
            [SprintResponse.model_validate(s) for s in sprints],
            meta=pagination.meta(total),
        )

    @router.post("", status_code=201)
    async def create_sprint(
        payload: SprintCreate,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            if not await project_queries.project_exists(session, payload.project_id):
                raise NotFoundError("Project not found")
            sprint = await sprint_queries.create_sprint(session, **payload.model_dump())

        return ok(SprintResponse.model_validate(sprint), status_code=201)

    @router.get("/{sprint_id}")
    async def get_sprint(
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            sprint = await sprint_queries.get_sprint(session, sprint_id)

        if sprint is None:
            raise NotFoundError("Sprint not found")
        return ok(SprintResponse.model_validate(sprint))

    async def _update(
        payload: SprintUpdate,
        sprint_id: UUID,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> JSONResponse:
        updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        async with session_factory() as session:
            sprint = await sprint_queries.get_sprint(session, sprint_id)
            if sprint is None:
                raise NotFoundError("Sprint not found")
            try:
                _check_dates(
                    updates.get("start_date", sprint.start_date),
                    updates.get("end_date", sprint.end_date),
                )
            except ValueError as e:
                raise ValidationFailedError(str(e)) from e
            sprint = await sprint_queries.update_sprint(session, sprint_id, **updates)

        return ok(SprintResponse.model_validate(sprint))

    @router.put("/{sprint_id}")
    async def replace_sprint(
        payload: SprintUpdate,
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        return await _update(payload, sprint_id, session_factory)

    @router.patch("/{sprint_id}")
    async def patch_sprint(
        payload: SprintUpdate,
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        return await _update(payload, sprint_id, session_factory)

    @router.delete("/{sprint_id}")
    async def delete_sprint(
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            sprint = await sprint_queries.archive_sprint(session, sprint_id)

        if sprint is None:
            raise NotFoundError("Sprint not found")
        return ok(SprintResponse.model_validate(sprint))

    @router.get("/{sprint_id}/tasks")
    async def sprint_tasks(
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        status: list[TaskStatus] | None = Query(None),  # noqa: B008
        assignee_id: str | None = Query(None, alias="assigneeId"),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        """Tasks of a sprint ordered by status, then priority, then creation."""
        async with session_factory() as session:
            if await sprint_queries.get_sprint(session, sprint_id) is None:
                raise NotFoundError("Sprint not found")
            tasks = await task_queries.list_sprint_tasks(
                session,
                sprint_id,
                statuses=[s.value for s in status or []],
                assignee_id=assignee_id,
            )

        return ok(
            [TaskResponse.model_validate(t) for t in tasks],
            meta={"sprintId": str(sprint_id), "totalTasks": len(tasks)},
        )

    @router.post("/{sprint_id}/start")
    async def start_sprint(
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            sprint = await sprint_queries.start_sprint(session, sprint_id)

        if sprint is None:
            raise NotFoundError("Sprint not found")
        return ok(SprintResponse.model_validate(sprint))

    @router.post("/{sprint_id}/complete")
    async def complete_sprint(
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        payload: CompleteSprintRequest | None = Body(None),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        options = payload or CompleteSprintRequest()
        async with session_factory() as session:
            sprint = await sprint_queries.get_sprint(session, sprint_id)
            if sprint is None:
                raise NotFoundError("Sprint not found")
            if options.move_to_sprint_id is not None:
                target = await sprint_queries.get_sprint(session, options.move_to_sprint_id)
                if target is None or target.project_id != sprint.project_id:
                    raise ValidationFailedError(
                        "Target sprint must belong to the same project",
                        details={"moveToSprintId": str(options.move_to_sprint_id)},
                    )
            result = await sprint_queries.complete_sprint(
                session,
                sprint_id,
                move_to_sprint_id=options.move_to_sprint_id,
                move_unfinished=options.move_unfinished,
            )

        if result is None:
            raise NotFoundError("Sprint not found")
        completed, moved = result
        return ok(
            SprintResponse.model_validate(completed),
            meta={"tasksMoved": moved},
        )

    return router
